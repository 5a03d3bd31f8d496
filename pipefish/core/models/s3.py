import logging
import os
import os.path
from typing import List, Sequence, TYPE_CHECKING
import zipfile

from botocore.config import Config as BotocoreConfig
from botocore.exceptions import BotoCoreError, ClientError

from pipefish.exceptions import ArtifactError

from .abstract import Manager

if TYPE_CHECKING:
    from .codepipeline import Artifact


__all__ = [
    'ArtifactManager',
]


logger = logging.getLogger(__name__)


class ArtifactManager(Manager):
    """
    Materialize CodePipeline input artifacts: download each artifact's zip file from the pipeline's
    artifact bucket and unpack it, so the caller gets back a flat list of local file paths.

    The session we're given should be the one built from the job's temporary artifact credentials.
    """

    service = 's3'

    def client_config(self) -> BotocoreConfig:
        # Pipeline artifact buckets are KMS encrypted, which requires SigV4
        return super().client_config().merge(BotocoreConfig(signature_version='s3v4'))

    def materialize(self, artifacts: Sequence["Artifact"], dest: str) -> List[str]:
        """
        Download and unzip every artifact in ``artifacts`` under the directory ``dest``.

        :returns: the paths of every file extracted from the artifacts
        """
        zips = [self.download(artifact, os.path.join(dest, 'artifacts')) for artifact in artifacts]
        filenames: List[str] = []
        for artifact, zip_path in zip(artifacts, zips):
            filenames.extend(self.unzip(zip_path, os.path.join(dest, 'files', artifact.name)))
        return filenames

    def download(self, artifact: "Artifact", dest: str) -> str:
        self.check_deadline('GetObject')
        try:
            response = self.client.get_object(Bucket=artifact.bucket, Key=artifact.key)
            body = response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            raise ArtifactError(
                f'could not download artifact "{artifact.name}" from s3://{artifact.bucket}/{artifact.key}: {e}'
            ) from e
        path = os.path.join(dest, artifact.key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'wb') as f:
                f.write(body)
        except OSError as e:
            raise ArtifactError(f'could not write artifact "{artifact.name}" to {path}: {e}') from e
        logger.info('downloaded artifact "%s" from s3://%s/%s', artifact.name, artifact.bucket, artifact.key)
        return path

    def unzip(self, path: str, dest: str) -> List[str]:
        """
        Unpack the zip file at ``path`` into ``dest``.

        :returns: the paths of the regular files we extracted
        """
        filenames: List[str] = []
        root = os.path.realpath(dest)
        try:
            with zipfile.ZipFile(path) as archive:
                for member in archive.infolist():
                    target = os.path.realpath(os.path.join(root, member.filename))
                    if target != root and not target.startswith(root + os.sep):
                        raise ArtifactError(f'{path}: member "{member.filename}" would extract outside {dest}')
                    archive.extract(member, root)
                    if not member.is_dir():
                        filenames.append(target)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArtifactError(f'could not unzip {path}: {e}') from e
        return filenames
