from typing import Any, Dict, List, Tuple

from pipefish.core.models.manifest import ImageUpdate

from ..abstract import Adapter


class CaseInsensitiveKeysMixin:
    """
    ``imagedefinitions.json`` files in the wild spell their keys every which way (``ServiceName``,
    ``serviceName``, ``servicename``), so we look keys up without regard to case.
    """

    def lower_keys(self, obj: Any, where: str) -> Dict[str, Any]:
        if not isinstance(obj, dict):
            raise Adapter.SchemaException(f'{where}: expected an object, got {type(obj).__name__}')
        return {str(k).lower(): v for k, v in obj.items()}


class ServiceUpdateRequestAdapter(CaseInsensitiveKeysMixin, Adapter):
    """
    Convert one entry of an ``imagedefinitions.json`` manifest into the data for a
    :py:class:`pipefish.core.models.manifest.ServiceUpdateRequest`.  An entry looks like::

        {
            "ServiceName": "web",
            "ImageDefinitions": [
                {"name": "app", "imageUri": "123456789012.dkr.ecr.us-west-2.amazonaws.com/app:v2"}
            ]
        }
    """

    def __init__(self, data: Dict[str, Any], **kwargs) -> None:
        super().__init__(self.lower_keys(data, 'manifest entry'), **kwargs)

    def get_imageUpdates(self) -> Tuple[ImageUpdate, ...]:
        definitions = self.data.get('imagedefinitions', [])
        if not isinstance(definitions, list):
            raise self.SchemaException(
                f'service "{self.data["servicename"]}": ImageDefinitions must be a list'
            )
        updates: List[ImageUpdate] = []
        for definition in definitions:
            definition = self.lower_keys(definition, f'service "{self.data["servicename"]}" image definition')
            try:
                update = ImageUpdate(definition['name'], definition['imageuri'])
            except KeyError as e:
                raise self.SchemaException(
                    f'service "{self.data["servicename"]}": image definition is missing {e}'
                )
            for key, value in (('name', update.container_name), ('imageUri', update.image_uri)):
                if not isinstance(value, str) or not value:
                    raise self.SchemaException(
                        f'service "{self.data["servicename"]}": image definition {key} must be a non-empty string'
                    )
            updates.append(update)
        return tuple(updates)

    def convert(self) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        data: Dict[str, Any] = {}
        self.set(data, 'servicename', 'serviceName')
        if not isinstance(data['serviceName'], str) or not data['serviceName']:
            raise self.SchemaException('ServiceName must be a non-empty string')
        data['imageUpdates'] = self.get_imageUpdates()
        return data, {}
