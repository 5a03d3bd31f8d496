from copy import deepcopy
import json
from typing import Any, Callable, Dict, List, Optional

import boto3
from botocore.config import Config as BotocoreConfig
from jsondiff import diff

from pipefish.core.deadline import Deadline
from pipefish.registry import importer_registry


__all__ = [
    'LazyAttributeMixin',
    'Manager',
    'Model',
]


class LazyAttributeMixin:

    def __init__(self) -> None:
        self.cache: Dict[str, Any] = {}
        super().__init__()

    def get_cached(self, key: str, populator: Callable, args: List[Any], kwargs: Dict[str, Any] = None) -> Any:
        kwargs = kwargs if kwargs else {}
        if key not in self.cache:
            self.cache[key] = populator(*args, **kwargs)
        return self.cache[key]


class Manager:
    """
    Managers do all the talking to AWS for a kind of model.

    Unlike models, managers are built per run: each one is given the boto3 session to use and
    the run's :py:class:`pipefish.core.deadline.Deadline`, so that nothing about one pipefish run
    leaks into another.
    """

    service: str

    #: Never give botocore a socket timeout shorter than this, even when the deadline is nearly up.
    MIN_CLIENT_TIMEOUT: float = 1.0

    def __init__(self, session: boto3.session.Session, deadline: Optional[Deadline] = None) -> None:
        self.session = session
        self.deadline = deadline
        self._client = None

    def client_config(self) -> BotocoreConfig:
        kwargs: Dict[str, Any] = {'retries': {'max_attempts': 3, 'mode': 'standard'}}
        if self.deadline:
            timeout = max(self.deadline.remaining(), self.MIN_CLIENT_TIMEOUT)
            kwargs['connect_timeout'] = timeout
            kwargs['read_timeout'] = timeout
        return BotocoreConfig(**kwargs)

    @property
    def client(self):
        if self._client is None:
            self._client = self.session.client(self.service, config=self.client_config())
        return self._client

    def check_deadline(self, operation: str) -> None:
        if self.deadline:
            self.deadline.check(operation)


class Model(LazyAttributeMixin):

    adapters = importer_registry

    @classmethod
    def adapt(cls, obj: Dict[str, Any], source: str, **kwargs):
        """
        Given an appropriate bit of data `obj` from a data source `source`, return the appropriate args and kwargs to
        the Model.new factory method so it can use them to construct the model instance.  This means: take the
        data in `obj` and convert it to look like the dict AWS would give us for this kind of object.
        """
        adapter = cls.adapters.get(cls.__name__, source)(obj, **kwargs)
        data, data_kwargs = adapter.convert()
        return data, data_kwargs

    @classmethod
    def new(cls, obj: Dict[str, Any], source: str, **kwargs) -> "Model":
        """
        This is a factory method.

        .. note::

            The ``**kwargs`` here is for the Adapter to use, not for the Model constructor.
        """
        data, model_kwargs = cls.adapt(obj, source, **kwargs)
        return cls(data, **model_kwargs)

    def __init__(self, data):
        super().__init__()
        self.data = data

    @property
    def pk(self):
        raise NotImplementedError

    @property
    def name(self):
        raise NotImplementedError

    @property
    def arn(self):
        raise NotImplementedError

    def render_for_diff(self) -> Dict[str, Any]:
        return self.render()

    def render_for_create(self) -> Dict[str, Any]:
        return self.render()

    def render(self) -> Dict[str, Any]:
        data = deepcopy(self.data)
        return data

    def diff(self, other: "Model") -> Dict[str, Any]:
        """
        Return what would change if ``other`` were replaced by us, in ``jsondiff``'s explicit syntax.
        """
        if self.__class__ != other.__class__:
            raise ValueError(f'{str(other)} is not a {self.__class__.__name__}')
        return json.loads(diff(other.render_for_diff(), self.render_for_diff(), syntax='explicit', dump=True))

    def __str__(self) -> str:
        return '{}(pk="{}")'.format(self.__class__.__name__, self.pk)
