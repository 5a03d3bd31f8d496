from typing import Any, Dict, NamedTuple, Tuple

from .abstract import Model


__all__ = [
    'ImageUpdate',
    'ServiceUpdateRequest',
]


class ImageUpdate(NamedTuple):
    """
    Run ``image_uri`` in the container named ``container_name``.
    """

    container_name: str
    image_uri: str


class ServiceUpdateRequest(Model):
    """
    One entry of the deployment manifest: the images we want to run in the containers of a single
    ECS service.  ``data`` looks like::

        {
            'serviceName': 'web',
            'imageUpdates': (
                ImageUpdate(container_name='app', image_uri='repo/app:v2'),
            )
        }

    These are read-only for the life of a run; use :py:meth:`Model.new` with the ``imagedefinitions``
    source to build them from manifest entries.
    """

    def __init__(self, data: Dict[str, Any]) -> None:
        super().__init__(data)
        self.data['imageUpdates'] = tuple(ImageUpdate(*u) for u in data.get('imageUpdates', ()))

    @property
    def pk(self) -> str:
        return self.service_name

    @property
    def name(self) -> str:
        return self.service_name

    @property
    def arn(self) -> None:
        return None

    @property
    def service_name(self) -> str:
        return self.data['serviceName']

    @property
    def image_updates(self) -> Tuple[ImageUpdate, ...]:
        return self.data['imageUpdates']

    def __repr__(self) -> str:
        return 'ServiceUpdateRequest(service_name={!r}, image_updates={!r})'.format(
            self.service_name, self.image_updates
        )
