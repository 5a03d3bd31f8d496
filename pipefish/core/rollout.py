import logging

from pipefish.core.models import ServiceManager, TaskDefinitionManager

from .reconcile import PlannedUpdate

logger = logging.getLogger(__name__)


class RolloutDriver:
    """
    Apply one :py:class:`pipefish.core.reconcile.PlannedUpdate` at a time: register the candidate task
    definition, then point the service at the new revision.  There is no rollback; if either call fails
    the exception propagates and the caller stops.
    """

    def __init__(self, task_definitions: TaskDefinitionManager, services: ServiceManager) -> None:
        self.task_definitions = task_definitions
        self.services = services

    def rollout(self, update: PlannedUpdate) -> str:
        """
        :returns: the ARN of the task definition revision we registered
        """
        arn = self.task_definitions.save(update.candidate)
        logger.info('registered %s', arn)
        service = update.service
        service.task_definition_arn = arn
        self.services.update(service)
        logger.info('service "%s" in cluster "%s" now uses %s', service.name, service.cluster_name, arn)
        return arn
