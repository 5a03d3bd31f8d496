"""
Tie the pieces of a deployment together: load the manifest from the job's artifacts, plan every
service, then roll the plan out one service at a time.
"""
import logging
import tempfile
from typing import Any, Dict, List, Optional, Sequence, Tuple

import boto3

from pipefish.config import Config
from pipefish.core.aws import AWSSessionBuilder
from pipefish.core.deadline import Deadline
from pipefish.core.manifest import load_manifest
from pipefish.core.models import (
    ArtifactManager,
    Job,
    ServiceManager,
    ServiceUpdateRequest,
    TaskDefinitionManager,
)
from pipefish.exceptions import ArtifactError

from .reconcile import PlannedUpdate, Reconciler
from .rollout import RolloutDriver

logger = logging.getLogger(__name__)


def fetch_manifest(
    job: Job,
    deadline: Optional[Deadline] = None,
    session: boto3.session.Session = None
) -> List[ServiceUpdateRequest]:
    """
    Download and unpack ``job``'s input artifacts into a temporary directory, and load the manifest
    from among their files.  The directory is gone by the time we return.

    Keyword Args:
        session: the session to read artifacts with.  If not given, we build one from the job's
            artifact credentials.

    Raises:
        ArtifactError: the job has no artifact credentials, or an artifact could not be materialized
        ManifestNotFound: no artifact contained a manifest
        ManifestMalformed: the manifest could not be parsed
    """
    if session is None:
        if not job.artifact_credentials:
            raise ArtifactError(f'job {job.pk} has no artifact credentials')
        session = AWSSessionBuilder().for_artifact_credentials(job.artifact_credentials)
    manager = ArtifactManager(session, deadline)
    with tempfile.TemporaryDirectory(prefix='pipefish-') as tmp_dir:
        paths = manager.materialize(job.artifacts, tmp_dir)
        return load_manifest(paths)


class DeploymentResult:
    """
    The task definition revisions a deployment registered, in rollout order.
    """

    #: CodePipeline limits on the executionDetails we report on success
    MAX_SUMMARY_LENGTH: int = 2048
    MAX_EXTERNAL_EXECUTION_ID_LENGTH: int = 1500

    def __init__(self, plan: Sequence[PlannedUpdate]) -> None:
        self.plan = plan
        self.deployed: List[Tuple[PlannedUpdate, str]] = []

    def add(self, update: PlannedUpdate, arn: str) -> None:
        self.deployed.append((update, arn))

    @property
    def service_names(self) -> List[str]:
        return [update.service.name for update, _ in self.deployed]

    @property
    def task_definition_arns(self) -> List[str]:
        return [arn for _, arn in self.deployed]

    @property
    def summary(self) -> str:
        if not self.deployed:
            return 'No services in the cluster matched the manifest'
        return 'Updated services: {}'.format(', '.join(self.service_names))

    def execution_details(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {
            'summary': self.summary[:self.MAX_SUMMARY_LENGTH],
            'percentComplete': 100,
        }
        if self.deployed:
            details['externalExecutionId'] = self.task_definition_arns[0][:self.MAX_EXTERNAL_EXECUTION_ID_LENGTH]
        return details


class Deployment:
    """
    Deploy the images named by a manifest to the services in ``config.cluster``.

    Args:
        config: our run configuration
        session: the boto3 session to talk to ECS with
        deadline: the run deadline
    """

    def __init__(
        self,
        config: Config,
        session: boto3.session.Session,
        deadline: Optional[Deadline] = None
    ) -> None:
        self.config = config
        self.services = ServiceManager(session, deadline)
        self.task_definitions = TaskDefinitionManager(session, deadline)

    def plan(self, requests: Sequence[ServiceUpdateRequest]) -> List[PlannedUpdate]:
        """
        Describe the services the manifest names and build a candidate task definition for each one
        that exists.  This changes nothing in AWS.
        """
        reconciler = Reconciler(requests, self.task_definitions)
        services = self.services.get_many(self.config.cluster, reconciler.names)
        for name in reconciler.unmatched(services):
            logger.info('service "%s" is not in cluster "%s"; ignoring it', name, self.config.cluster)
        return reconciler.plan(services)

    def run(self, requests: Sequence[ServiceUpdateRequest]) -> DeploymentResult:
        """
        Plan every service first, then register and update each one in turn.  The first failure stops
        the rollout; services already updated stay updated.
        """
        plan = self.plan(requests)
        driver = RolloutDriver(self.task_definitions, self.services)
        result = DeploymentResult(plan)
        for update in plan:
            result.add(update, driver.rollout(update))
        logger.info(result.summary)
        return result
