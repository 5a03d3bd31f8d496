import logging
from typing import Dict, Mapping, Optional, Sequence

import boto3

from pipefish.core.deadline import Deadline
from pipefish.core.models import Parameter, ParameterManager
from pipefish.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Config:
    """
    Everything a single pipefish run needs to know about where it is deploying.  We build one of these
    per run and pass it into the components that need it.

    In Lambda, build it with :py:meth:`new`, which reads our environment and the project's SSM Parameter
    Store parameters.  The CLI can build one directly with :py:meth:`from_values`.

    Args:
        cluster: the name or ARN of the ECS cluster whose services we update

    Keyword Args:
        project_id: the project whose SSM parameters live under ``/<project_id>``
        timeout: the run deadline in seconds
        parameters: every SSM parameter we read, keyed by name relative to ``/<project_id>``
    """

    PROJECT_ID_VARIABLE: str = 'PROJECT_ID'
    TIMEOUT_VARIABLE: str = 'PIPEFISH_TIMEOUT'

    DEFAULT_TIMEOUT: float = 60

    CLUSTER_PARAMETER: str = 'ecs-cluster'
    REQUIRED_PARAMETERS: Sequence[str] = (CLUSTER_PARAMETER,)

    def __init__(
        self,
        cluster: str,
        project_id: str = None,
        timeout: float = DEFAULT_TIMEOUT,
        parameters: Dict[str, str] = None
    ) -> None:
        self.cluster = cluster
        self.project_id = project_id
        self.timeout = timeout
        self.parameters: Dict[str, str] = parameters if parameters else {}

    @classmethod
    def from_values(cls, cluster: str, project_id: str = None, timeout: float = None, **kwargs) -> "Config":
        if not cluster:
            raise ConfigurationError('no ECS cluster given')
        if timeout is None:
            timeout = cls.DEFAULT_TIMEOUT
        return cls(cluster, project_id=project_id, timeout=timeout, **kwargs)

    @classmethod
    def timeout_from_environ(cls, environ: Mapping[str, str]) -> float:
        """
        Return the run deadline in seconds: ``$PIPEFISH_TIMEOUT`` if it is set, else
        :py:attr:`DEFAULT_TIMEOUT`.

        Raises:
            ConfigurationError: ``$PIPEFISH_TIMEOUT`` is not a positive number
        """
        value = environ.get(cls.TIMEOUT_VARIABLE)
        if not value:
            return cls.DEFAULT_TIMEOUT
        try:
            timeout = float(value)
        except ValueError:
            raise ConfigurationError(f'{cls.TIMEOUT_VARIABLE} must be a number of seconds, not "{value}"')
        if timeout <= 0:
            raise ConfigurationError(f'{cls.TIMEOUT_VARIABLE} must be greater than zero')
        return timeout

    @classmethod
    def project_path(cls, project_id: str) -> str:
        return '/' + project_id.strip('/')

    @classmethod
    def load_parameters(
        cls,
        project_id: str,
        session: boto3.session.Session,
        deadline: Optional[Deadline] = None
    ) -> Sequence[Parameter]:
        return ParameterManager(session, deadline).list(cls.project_path(project_id))

    @classmethod
    def new(
        cls,
        environ: Mapping[str, str],
        session: boto3.session.Session,
        deadline: Optional[Deadline] = None,
        project_id: str = None
    ) -> "Config":
        """
        Build our configuration from the environment ``environ`` and the SSM parameters under
        ``/<PROJECT_ID>``.

        Keyword Args:
            project_id: use this instead of ``$PROJECT_ID``

        Raises:
            ConfigurationError: ``$PROJECT_ID`` is not set, a required parameter is missing,
                or we could not read the parameters at all
        """
        if not project_id:
            project_id = environ.get(cls.PROJECT_ID_VARIABLE)
        if not project_id:
            raise ConfigurationError(
                f'no project id configured: set the {cls.PROJECT_ID_VARIABLE} environment variable'
            )
        timeout = cls.timeout_from_environ(environ)
        parameters = {p.name: p.value for p in cls.load_parameters(project_id, session, deadline)}
        missing = [name for name in cls.REQUIRED_PARAMETERS if not parameters.get(name)]
        if missing:
            raise ConfigurationError(
                'missing required SSM parameters under {}: {}'.format(
                    cls.project_path(project_id),
                    ', '.join(missing)
                )
            )
        logger.info('project "%s": deploying to cluster "%s"', project_id, parameters[cls.CLUSTER_PARAMETER])
        return cls(
            parameters[cls.CLUSTER_PARAMETER],
            project_id=project_id,
            timeout=timeout,
            parameters=parameters
        )

    def __str__(self) -> str:
        return f'Config(project_id="{self.project_id}", cluster="{self.cluster}")'
