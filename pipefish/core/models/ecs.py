from copy import deepcopy
import bisect
import logging
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from botocore.exceptions import BotoCoreError, ClientError

from pipefish.exceptions import (
    ClusterQueryFailed,
    RegistrationFailed,
    ServiceUpdateFailed,
)

from .abstract import Manager, Model


__all__ = [
    'ContainerDefinition',
    'Service',
    'ServiceManager',
    'TaskDefinition',
    'TaskDefinitionManager',
]

logger = logging.getLogger(__name__)


# ----------------------------------------
# Managers
# ----------------------------------------

class TaskDefinitionManager(Manager):

    service = 'ecs'

    def get(self, pk: str, **_) -> "TaskDefinition":
        """
        :param pk str: a task definition ARN, or a string like "{family}:{revision}"
        """
        self.check_deadline('DescribeTaskDefinition')
        try:
            response = self.client.describe_task_definition(
                taskDefinition=pk,
                include=['TAGS']
            )
        except (ClientError, BotoCoreError) as e:
            raise ClusterQueryFailed(f'could not describe task definition "{pk}": {e}') from e
        data = response['taskDefinition']
        # For some reason, tags are not included as part of the task definition, but are alongside it
        if response.get('tags'):
            data['tags'] = response['tags']
        containers = [ContainerDefinition(d) for d in data.pop('containerDefinitions')]
        return TaskDefinition(data, containers=containers)

    def save(self, obj: "TaskDefinition", **_) -> str:
        """
        Register ``obj`` as a new revision of its family.  Existing revisions are never touched.

        :returns: the ARN of the new revision
        """
        self.check_deadline('RegisterTaskDefinition')
        try:
            response = self.client.register_task_definition(**obj.render_for_create())
        except (ClientError, BotoCoreError) as e:
            raise RegistrationFailed(
                f'could not register a new revision of task definition family "{obj.family}": {e}'
            ) from e
        return response['taskDefinition']['taskDefinitionArn']


class ServiceManager(Manager):

    service: str = 'ecs'

    #: describe_services only accepts this many names in its ``services`` kwarg
    DESCRIBE_BATCH_SIZE: int = 10

    def get_many(self, cluster: str, names: List[str], **_) -> Sequence["Service"]:
        """
        Describe the services named in ``names`` in ``cluster``.

        Services that don't exist, or which have been deleted (``INACTIVE``), are simply absent from
        the result.  The result is in the order AWS gave it to us, not necessarily the order of ``names``.
        """
        if not names:
            return []
        chunks = [
            names[i * self.DESCRIBE_BATCH_SIZE:(i + 1) * self.DESCRIBE_BATCH_SIZE]
            for i in range((len(names) + self.DESCRIBE_BATCH_SIZE - 1) // self.DESCRIBE_BATCH_SIZE)
        ]
        services: List[Dict[str, Any]] = []
        for chunk in chunks:
            self.check_deadline('DescribeServices')
            try:
                response = self.client.describe_services(cluster=cluster, services=chunk)
            except (ClientError, BotoCoreError) as e:
                raise ClusterQueryFailed(f'could not describe services in cluster "{cluster}": {e}') from e
            for failure in response.get('failures', []):
                logger.debug(
                    'describe_services: %s in cluster "%s": %s',
                    failure.get('arn', '?'), cluster, failure.get('reason', 'UNKNOWN')
                )
            services.extend([s for s in response.get('services', []) if s.get('status') != 'INACTIVE'])
        return [Service(data) for data in services]

    def update(self, obj: "Service", **_) -> None:
        self.check_deadline('UpdateService')
        try:
            self.client.update_service(**obj.render_for_update())
        except (ClientError, BotoCoreError) as e:
            raise ServiceUpdateFailed(
                f'could not update service "{obj.name}" in cluster "{obj.cluster}": {e}'
            ) from e


# ----------------------------------------
# Models
# ----------------------------------------

class TaskDefinition(Model):
    """
    An ECS Task Definition.

    .. note::

        In AWS, the task definition object contains all the configuration for each of the containers that
        will be part of the task, but here we put container definitions into ``ContainerDefinition``
        objects so that we can work with them more effectively.

    ``TaskDefinition.data`` looks like the ``taskDefinition`` key of the ``describe_task_definition``
    response, minus ``containerDefinitions``::

        'taskDefinitionArn': 'string',                        Not present on a candidate we built
        'family': 'string',
        'taskRoleArn': 'string',                              [optional]
        'executionRoleArn': 'string',                         [optional]
        'networkMode': 'bridge'|'host'|'awsvpc'|'none',
        'revision': 123,                                      Not present on a candidate we built
        'volumes': [...],                                     [optional]
        'status': 'ACTIVE'|'INACTIVE',
        'requiresAttributes': [...],
        'placementConstraints': [...],
        'compatibilities': ['EC2'|'FARGATE'],
        'requiresCompatibilities': ['EC2'|'FARGATE'],         [optional]
        'cpu': 'string',
        'memory': 'string',
        'registeredAt': datetime,
        'registeredBy': 'string',
        'tags': [{'key': 'string', 'value': 'string'}]        [optional]
    """

    #: Keys AWS fills in itself; they can't be sent to ``register_task_definition``.
    READONLY_KEYS: Tuple[str, ...] = (
        'taskDefinitionArn',
        'revision',
        'status',
        'requiresAttributes',
        'compatibilities',
        'registeredAt',
        'registeredBy',
        'deregisteredAt',
    )

    #: Keys ``register_task_definition`` accepts.
    REGISTRABLE_KEYS: Tuple[str, ...] = (
        'family',
        'taskRoleArn',
        'executionRoleArn',
        'networkMode',
        'containerDefinitions',
        'volumes',
        'placementConstraints',
        'requiresCompatibilities',
        'cpu',
        'memory',
        'tags',
        'pidMode',
        'ipcMode',
        'proxyConfiguration',
        'inferenceAccelerators',
        'ephemeralStorage',
        'runtimePlatform',
    )

    def __init__(self, data: Dict[str, Any], containers: List["ContainerDefinition"] = None) -> None:
        super().__init__(data)
        self.containers: List[ContainerDefinition] = containers if containers else []

    # ---------------------
    # Model overrides
    # ---------------------

    @property
    def pk(self) -> str:
        """
        If this task definition exists in AWS, return our ``<family>:<revision>`` string.
        Else, return just the family.
        """
        if self.revision:
            return f"{self.data['family']}:{self.revision}"
        return self.data['family']

    @property
    def name(self) -> str:
        return self.pk

    @property
    def arn(self) -> Optional[str]:
        return self.data.get('taskDefinitionArn', None)

    def render(self) -> Dict[str, Any]:
        data = deepcopy(self.data)
        # Keep AWS's container order: a candidate must differ from its source only in images
        data['containerDefinitions'] = [c.render() for c in self.containers]
        return data

    def render_for_diff(self) -> Dict[str, Any]:
        data = self.render()
        for key in self.READONLY_KEYS:
            data.pop(key, None)
        return data

    def render_for_create(self) -> Dict[str, Any]:
        """
        Prepare the payload for ``boto3.client('ecs').register_task_definition()``.
        """
        data = self.render()
        payload = {key: data[key] for key in self.REGISTRABLE_KEYS if key in data}
        if not payload.get('tags'):
            payload.pop('tags', None)
        return payload

    # ----------------------------------
    # TaskDefinition-specific properties
    # ----------------------------------

    @property
    def family(self) -> str:
        return self.data['family']

    @property
    def revision(self) -> Optional[int]:
        return self.data.get('revision', None)

    def container_index(self) -> Tuple[List[str], List["ContainerDefinition"]]:
        """
        Return our containers sorted by name, along with the list of their sorted names, so that
        callers can look containers up with :py:mod:`bisect`.  We never trust the order AWS gave us.
        """
        containers = sorted(self.containers, key=lambda c: c.name)
        return [c.name for c in containers], containers

    def get_container(self, name: str) -> Optional["ContainerDefinition"]:
        names, containers = self.container_index()
        pos = bisect.bisect_left(names, name)
        if pos < len(names) and names[pos] == name:
            return containers[pos]
        return None

    def copy(self) -> "TaskDefinition":
        """
        Return an unregistered candidate built from us: every key AWS sets itself is stripped, and the
        containers are deep copies so changing them leaves us alone.
        """
        data = deepcopy(self.data)
        for key in self.READONLY_KEYS:
            data.pop(key, None)
        containers = [c.copy() for c in self.containers]
        return self.__class__(data, containers=containers)


class ContainerDefinition:

    def __init__(self, data: Dict[str, Any]) -> None:
        self.data: Dict[str, Any] = data

    @property
    def pk(self) -> str:
        return self.name

    @property
    def name(self) -> str:
        return self.data.get('name', None)

    @property
    def image(self) -> str:
        return self.data.get('image', None)

    @image.setter
    def image(self, value: str) -> None:
        self.data['image'] = value

    def render(self) -> Dict[str, Any]:
        return deepcopy(self.data)

    def copy(self) -> "ContainerDefinition":
        return self.__class__(self.render())

    def __str__(self) -> str:
        return 'ContainerDefinition(name="{}")'.format(self.name)


class Service(Model):
    """
    An ECS Service, as returned by ``describe_services``.  We only ever point existing services at new
    task definitions, so the only payload we build for AWS is the one for ``update_service``.
    """

    #: Deployment configuration we must forward to ``update_service`` exactly as we observed it.
    PASSTHROUGH_KEYS: Tuple[str, ...] = (
        'desiredCount',
        'healthCheckGracePeriodSeconds',
        'deploymentConfiguration',
        'networkConfiguration',
    )

    # ---------------------
    # Model overrides
    # ---------------------

    @property
    def pk(self) -> str:
        """
        Service names are only unique within a cluster, so to fully identify a service you have to
        give both cluster and service name.

        :returns: "{cluster_name}:{service_name}".
        """
        return ':'.join([self.cluster_name, self.name])

    @property
    def name(self) -> str:
        return self.data['serviceName']

    @property
    def arn(self) -> Optional[str]:
        return self.data.get('serviceArn', None)

    def render_for_update(self) -> Dict[str, Any]:
        """
        Prepare the AWS payload for ``boto3.client('ecs').update_service()``.

        .. note::

            We expect that the service's new task definition will have been registered before this is
            called, and its ARN saved as ``self.data['taskDefinition']``.
        """
        data: Dict[str, Any] = {}
        data['cluster'] = self.cluster
        data['service'] = self.name
        data['taskDefinition'] = self.data['taskDefinition']
        for key in self.PASSTHROUGH_KEYS:
            if self.data.get(key) is not None:
                data[key] = deepcopy(self.data[key])
        return data

    # ----------------------------
    # Service-specific properties
    # ----------------------------

    @property
    def cluster(self) -> str:
        return self.data.get('clusterArn', self.data.get('cluster'))

    @property
    def cluster_name(self) -> str:
        return self.cluster.rsplit('/', 1)[-1]

    @property
    def task_definition_arn(self) -> Optional[str]:
        return self.data.get('taskDefinition', None)

    @task_definition_arn.setter
    def task_definition_arn(self, value: str) -> None:
        self.data['taskDefinition'] = value
