"""
The AWS Lambda entry point.  CodePipeline invokes :py:func:`handler` as a custom deploy action; we
deploy the images in the job's ``imagedefinitions.json`` and report exactly one outcome for the job.
"""
import logging
import os
from typing import Any, Dict, Mapping

import boto3

from pipefish.config import Config
from pipefish.core.deadline import Deadline
from pipefish.core.deploy import Deployment, DeploymentResult, fetch_manifest
from pipefish.core.models import Job, JobManager
from pipefish.exceptions import OutcomeSignalFailed

logger = logging.getLogger(__name__)

LOG_LEVEL_VARIABLE = 'PIPEFISH_LOG_LEVEL'


def configure_logging(environ: Mapping[str, str]) -> None:
    level = environ.get(LOG_LEVEL_VARIABLE, 'INFO').upper()
    root = logging.getLogger()
    if not root.handlers:
        # Lambda installs a handler on the root logger for us; elsewhere we need our own
        logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s %(message)s')
    root.setLevel(level)


def run_job(
    job: Job,
    session: boto3.session.Session,
    environ: Mapping[str, str],
    context: Any = None
) -> DeploymentResult:
    deadline = Deadline.for_lambda(Config.timeout_from_environ(environ), context)
    logger.info('job %s: %s', job.pk, deadline)
    config = Config.new(environ, session, deadline)
    requests = fetch_manifest(job, deadline)
    return Deployment(config, session, deadline).run(requests)


def handler(event: Dict[str, Any], context: Any = None) -> None:
    """
    Raises:
        pipefish.exceptions.PipefishError: the deployment failed.  We've already reported the failure
            to CodePipeline.
        OutcomeSignalFailed: we could not report the outcome to CodePipeline
    """
    configure_logging(os.environ)
    job = Job.new(event, 'codepipeline')
    session = boto3.session.Session()
    pipeline = JobManager(session)
    try:
        result = run_job(job, session, os.environ, context)
    except OutcomeSignalFailed:
        raise
    except Exception as e:
        logger.exception('job %s failed', job.pk)
        try:
            pipeline.put_failure(job, e)
        except OutcomeSignalFailed as signal_error:
            raise signal_error from e
        raise
    pipeline.put_success(job, result.execution_details())
    logger.info('job %s succeeded', job.pk)
