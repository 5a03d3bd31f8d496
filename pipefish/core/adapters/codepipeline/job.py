from typing import Any, Dict, Tuple

from ..abstract import Adapter


class JobAdapter(Adapter):
    """
    Pull the CodePipeline job out of the event AWS Lambda hands our handler::

        {
            "CodePipeline.job": {
                "id": "11111111-abcd-1111-abcd-111111abcdef",
                "accountId": "111111111111",
                "data": {
                    "actionConfiguration": {...},
                    "inputArtifacts": [...],
                    "outputArtifacts": [],
                    "artifactCredentials": {
                        "accessKeyId": "...",
                        "secretAccessKey": "...",
                        "sessionToken": "..."
                    }
                }
            }
        }
    """

    EVENT_KEY: str = 'CodePipeline.job'

    def __init__(self, data: Dict[str, Any], **kwargs) -> None:
        if not isinstance(data, dict) or self.EVENT_KEY not in data:
            raise self.SchemaException(f'event has no "{self.EVENT_KEY}" key; is this a CodePipeline invocation?')
        super().__init__(data[self.EVENT_KEY], **kwargs)

    def convert(self) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        data: Dict[str, Any] = {}
        self.set(data, 'id')
        self.set(data, 'accountId', optional=True)
        self.set(data, 'data', default={})
        data['data'].setdefault('inputArtifacts', [])
        return data, {}
