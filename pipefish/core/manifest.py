"""
Find the deployment manifest among the files of our pipeline's input artifacts and turn it into a
sorted list of :py:class:`pipefish.core.models.manifest.ServiceUpdateRequest` objects.
"""
import json
import logging
import os.path
from typing import List, Sequence

import pipefish.core.adapters  # noqa:F401  # pylint:disable=unused-import
from pipefish.core.models.manifest import ImageUpdate, ServiceUpdateRequest  # noqa:F401
from pipefish.exceptions import ArtifactError, ManifestMalformed, ManifestNotFound, PipefishError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = 'imagedefinitions.json'


def locate_manifest(paths: Sequence[str], filename: str = MANIFEST_FILENAME) -> str:
    """
    Return the path in ``paths`` that contains ``filename``.

    We look through ``paths`` in lexical order, so if more than one artifact carries a manifest, the
    choice is at least stable from run to run.

    Raises:
        ManifestNotFound: no path in ``paths`` contains ``filename``
    """
    candidates = [p for p in sorted(paths) if filename in p]
    if not candidates:
        raise ManifestNotFound(filename)
    if len(candidates) > 1:
        logger.warning('found %d copies of %s; using %s', len(candidates), filename, candidates[0])
    return candidates[0]


def parse_manifest(raw: str, filename: str = MANIFEST_FILENAME) -> List[ServiceUpdateRequest]:
    """
    Decode the contents of an ``imagedefinitions.json`` file.

    Returns:
        The service update requests, sorted by service name.

    Raises:
        ManifestMalformed: ``raw`` is not JSON or is not a list of manifest entries
    """
    try:
        entries = json.loads(raw)
    except ValueError as e:
        raise ManifestMalformed(e, filename=filename) from e
    logger.info('%s from artifact: %s', filename, json.dumps(entries))
    if not isinstance(entries, list):
        raise ManifestMalformed(
            ValueError(f'expected a list of services, got {type(entries).__name__}'),
            filename=filename
        )
    try:
        requests = [ServiceUpdateRequest.new(entry, 'imagedefinitions') for entry in entries]
    except PipefishError as e:
        raise ManifestMalformed(e, filename=filename) from e
    requests.sort(key=lambda r: r.service_name)
    return requests


def read_manifest_file(path: str) -> List[ServiceUpdateRequest]:
    """
    Read and parse the manifest file at ``path``.
    """
    filename = os.path.basename(path)
    try:
        with open(path, encoding='utf-8') as f:
            raw = f.read()
    except UnicodeDecodeError as e:
        raise ManifestMalformed(e, filename=filename) from e
    except OSError as e:
        raise ArtifactError(f'could not read {path}: {e}') from e
    return parse_manifest(raw, filename=filename)


def load_manifest(paths: Sequence[str], filename: str = MANIFEST_FILENAME) -> List[ServiceUpdateRequest]:
    """
    Find the manifest among ``paths`` and parse it.
    """
    return read_manifest_file(locate_manifest(paths, filename=filename))
