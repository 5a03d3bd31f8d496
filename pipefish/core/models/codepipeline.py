from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from pipefish.exceptions import OutcomeSignalFailed

from .abstract import Manager, Model


__all__ = [
    'Artifact',
    'Job',
    'JobManager',
]


# ----------------------------------------
# Managers
# ----------------------------------------

class JobManager(Manager):
    """
    Report the outcome of a CodePipeline job.  Each invocation makes exactly one of these calls.

    .. note::

        We don't check the run deadline here: when the deadline is what killed the run, we still need to
        tell CodePipeline about it.
    """

    service = 'codepipeline'

    #: CodePipeline rejects failure messages longer than this
    MAX_MESSAGE_LENGTH: int = 5000

    FAILURE_TYPE: str = 'JobFailed'

    def put_success(self, job: "Job", execution_details: Dict[str, Any] = None) -> None:
        kwargs: Dict[str, Any] = {'jobId': job.pk}
        if execution_details:
            kwargs['executionDetails'] = execution_details
        try:
            self.client.put_job_success_result(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise OutcomeSignalFailed(f'could not report success for job {job.pk}: {e}') from e

    def put_failure(self, job: "Job", error: Exception) -> None:
        try:
            self.client.put_job_failure_result(
                jobId=job.pk,
                failureDetails=self.render_failure(error)
            )
        except (ClientError, BotoCoreError) as e:
            raise OutcomeSignalFailed(f'could not report failure for job {job.pk}: {e}') from e

    def render_failure(self, error: Exception) -> Dict[str, str]:
        message = str(error) or error.__class__.__name__
        return {
            'type': self.FAILURE_TYPE,
            'message': message[:self.MAX_MESSAGE_LENGTH],
        }


# ----------------------------------------
# Models
# ----------------------------------------

class Artifact(Model):
    """
    One of a CodePipeline job's input artifacts.  ``data`` is one entry of ``data.inputArtifacts``
    from the job::

        {
            'name': 'BuildOutput',
            'revision': None,
            'location': {
                'type': 'S3',
                's3Location': {
                    'bucketName': 'codepipeline-us-west-2-1234567890',
                    'objectKey': 'my-pipeline/BuildOutput/abc123'
                }
            }
        }
    """

    @property
    def pk(self) -> str:
        return 's3://{}/{}'.format(self.bucket, self.key)

    @property
    def name(self) -> str:
        return self.data['name']

    @property
    def arn(self) -> None:
        return None

    @property
    def bucket(self) -> str:
        return self.data['location']['s3Location']['bucketName']

    @property
    def key(self) -> str:
        return self.data['location']['s3Location']['objectKey']


class Job(Model):
    """
    A CodePipeline job, as handed to our Lambda function in ``event['CodePipeline.job']``.
    """

    @property
    def pk(self) -> str:
        return self.data['id']

    @property
    def name(self) -> str:
        return self.pk

    @property
    def arn(self) -> None:
        return None

    @property
    def artifacts(self) -> List[Artifact]:
        return self.get_cached(
            'artifacts',
            lambda: [Artifact(a) for a in self.data['data'].get('inputArtifacts', [])],
            []
        )

    @property
    def artifact_credentials(self) -> Optional[Dict[str, str]]:
        return self.data['data'].get('artifactCredentials', None)
