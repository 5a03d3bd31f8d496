"""
Work out, for each ECS service in our cluster, the new task definition revision the deployment
manifest asks for.

Nothing here talks to AWS except to read the services' current task definitions; planning happens
for every service before :py:mod:`pipefish.core.rollout` registers or updates anything, so a bad
container name anywhere in the manifest stops the run before we change the cluster.
"""
import bisect
import logging
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from pipefish.core.models import (
    Service,
    ServiceUpdateRequest,
    TaskDefinition,
    TaskDefinitionManager,
)
from pipefish.exceptions import ClusterQueryFailed, ContainerNotFound

logger = logging.getLogger(__name__)


class ImageChange(NamedTuple):

    container_name: str
    current_image: Optional[str]
    new_image: str


class PlannedUpdate(NamedTuple):
    """
    What we intend to do to one service: register ``candidate`` and point ``service`` at it.
    """

    service: Service
    request: ServiceUpdateRequest
    current: TaskDefinition
    candidate: TaskDefinition

    @property
    def changes(self) -> List[ImageChange]:
        changes = []
        for update in self.request.image_updates:
            container = self.current.get_container(update.container_name)
            changes.append(ImageChange(
                update.container_name,
                container.image if container else None,
                update.image_uri
            ))
        return changes

    def diff(self) -> Dict[str, Any]:
        return self.candidate.diff(self.current)


class Reconciler:
    """
    Match the services we observed in the cluster against the manifest's requests and build a
    candidate task definition for each match.

    Args:
        requests: the service update requests from the manifest
        task_definitions: the manager we use to look up each service's current task definition
    """

    def __init__(self, requests: Sequence[ServiceUpdateRequest], task_definitions: TaskDefinitionManager) -> None:
        self.requests: List[ServiceUpdateRequest] = sorted(requests, key=lambda r: r.service_name)
        self.names: List[str] = [r.service_name for r in self.requests]
        self.task_definitions = task_definitions

    def match(self, service: Service) -> Optional[ServiceUpdateRequest]:
        pos = bisect.bisect_left(self.names, service.name)
        if pos < len(self.names) and self.names[pos] == service.name:
            return self.requests[pos]
        return None

    def build_candidate(self, request: ServiceUpdateRequest, current: TaskDefinition) -> TaskDefinition:
        """
        Return an unregistered copy of ``current`` whose containers run the images ``request`` names.
        Everything else about ``current`` is carried over unchanged.

        Raises:
            ContainerNotFound: ``request`` names a container ``current`` does not have
        """
        candidate = current.copy()
        names, containers = candidate.container_index()
        for update in request.image_updates:
            pos = bisect.bisect_left(names, update.container_name)
            if pos == len(names) or names[pos] != update.container_name:
                raise ContainerNotFound(update.container_name, service_name=request.service_name)
            containers[pos].image = update.image_uri
        return candidate

    def plan_service(self, service: Service) -> Optional[PlannedUpdate]:
        request = self.match(service)
        if request is None:
            logger.debug('service "%s" is not in the manifest; skipping', service.name)
            return None
        if not service.task_definition_arn:
            raise ClusterQueryFailed(f'service "{service.name}" has no task definition')
        current = self.task_definitions.get(service.task_definition_arn)
        candidate = self.build_candidate(request, current)
        logger.info(
            'service "%s": planned new revision of "%s" with %s',
            service.name,
            current.family,
            ', '.join(f'{u.container_name}={u.image_uri}' for u in request.image_updates) or 'no image changes'
        )
        return PlannedUpdate(service, request, current, candidate)

    def plan(self, services: Sequence[Service]) -> List[PlannedUpdate]:
        """
        Plan an update for every service in ``services`` that the manifest names, in the order given.

        Raises:
            ContainerNotFound: any request names a container missing from its service's task definition
            ClusterQueryFailed: we could not read a service's current task definition
        """
        plan: List[PlannedUpdate] = []
        for service in services:
            update = self.plan_service(service)
            if update is not None:
                plan.append(update)
        return plan

    def unmatched(self, services: Sequence[Service]) -> Tuple[str, ...]:
        """
        Return the names of the requests that matched none of ``services``.
        """
        found = {s.name for s in services}
        return tuple(name for name in self.names if name not in found)
