from typing import Any, Dict, List, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from pipefish.exceptions import ConfigurationError

from .abstract import Manager, Model


__all__ = [
    'Parameter',
    'ParameterManager',
]


# ----------------------------------------
# Managers
# ----------------------------------------

class ParameterManager(Manager):

    service = 'ssm'

    def list(self, path: str, recursive: bool = True, with_decryption: bool = True) -> Sequence["Parameter"]:
        """
        Return every AWS SSM Parameter Store parameter under ``path``.

        ``get_parameters_by_path`` returns at most 10 parameters per call, so we let the boto3 paginator
        follow ``NextToken`` until AWS stops giving us one.

        :param path: the hierarchy to look under, e.g. ``/my-project``
        """
        paginator = self.client.get_paginator('get_parameters_by_path')
        parameters: List[Parameter] = []
        try:
            self.check_deadline('GetParametersByPath')
            response_iterator = paginator.paginate(
                Path=path,
                Recursive=recursive,
                WithDecryption=with_decryption
            )
            for page in response_iterator:
                parameters.extend(Parameter(p, prefix=path) for p in page['Parameters'])
                self.check_deadline('GetParametersByPath')
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(f'could not read SSM parameters under "{path}": {e}') from e
        return parameters


# ----------------------------------------
# Models
# ----------------------------------------

class Parameter(Model):
    """
    A single AWS SSM Parameter Store parameter, as returned by ``get_parameters_by_path``.

    ``prefix`` is the path we listed under; :py:attr:`name` is the parameter's name relative to it,
    so ``/my-project/ecs-cluster`` listed under ``/my-project`` is named ``ecs-cluster``.
    """

    def __init__(self, data: Dict[str, Any], prefix: str = '') -> None:
        super().__init__(data)
        self.prefix = prefix.rstrip('/')

    @property
    def pk(self) -> str:
        return self.data['Name']

    @property
    def name(self) -> str:
        if self.prefix and self.pk.startswith(self.prefix + '/'):
            return self.pk[len(self.prefix) + 1:]
        return self.pk

    @property
    def arn(self) -> str:
        return self.data.get('ARN', None)

    @property
    def value(self) -> str:
        return self.data['Value']

    @property
    def is_secure(self) -> bool:
        return self.data.get('Type', 'String') == 'SecureString'

    @property
    def display_value(self) -> str:
        if self.is_secure:
            return '*******'
        return self.value
