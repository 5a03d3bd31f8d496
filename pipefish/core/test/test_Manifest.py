import json
import os
import unittest

from testfixtures import LogCapture, TempDirectory

from pipefish.core.manifest import load_manifest, locate_manifest, parse_manifest, read_manifest_file
from pipefish.core.models.manifest import ImageUpdate
from pipefish.exceptions import ArtifactError, ManifestMalformed, ManifestNotFound


MANIFEST = [
    {'ServiceName': 'worker', 'ImageDefinitions': [{'name': 'app', 'imageUri': 'repo/app:2.0'}]},
    {'ServiceName': 'web', 'ImageDefinitions': [{'name': 'app', 'imageUri': 'repo/app:2.0'}]},
]


class TestLocateManifest(unittest.TestCase):

    def test_finds_manifest(self):
        paths = ['/tmp/x/files/Build/report.txt', '/tmp/x/files/Build/imagedefinitions.json']
        self.assertEqual(locate_manifest(paths), '/tmp/x/files/Build/imagedefinitions.json')

    def test_not_found(self):
        with self.assertRaises(ManifestNotFound) as cm:
            locate_manifest(['/tmp/x/files/Build/report.txt'])
        self.assertEqual(str(cm.exception), 'could not find imagedefinitions.json')

    def test_no_paths(self):
        with self.assertRaises(ManifestNotFound):
            locate_manifest([])

    def test_first_in_lexical_order_wins(self):
        paths = ['/tmp/x/files/B/imagedefinitions.json', '/tmp/x/files/A/imagedefinitions.json']
        with LogCapture() as log:
            self.assertEqual(locate_manifest(paths), '/tmp/x/files/A/imagedefinitions.json')
        self.assertEqual(log.records[-1].levelname, 'WARNING')


class TestParseManifest(unittest.TestCase):

    def test_sorted_by_service_name(self):
        requests = parse_manifest(json.dumps(MANIFEST))
        self.assertEqual([r.service_name for r in requests], ['web', 'worker'])
        self.assertEqual(requests[0].image_updates, (ImageUpdate('app', 'repo/app:2.0'),))

    def test_empty_list(self):
        self.assertEqual(parse_manifest('[]'), [])

    def test_payload_is_logged(self):
        with LogCapture('pipefish.core.manifest') as log:
            parse_manifest(json.dumps(MANIFEST))
        self.assertEqual(log.records[0].levelname, 'INFO')
        self.assertIn('worker', log.records[0].getMessage())

    def test_not_json(self):
        with self.assertRaises(ManifestMalformed) as cm:
            parse_manifest('[{"ServiceName": ')
        self.assertTrue(str(cm.exception).startswith('could not parse imagedefinitions.json: '))

    def test_not_a_list(self):
        with self.assertRaises(ManifestMalformed):
            parse_manifest('{"ServiceName": "web"}')

    def test_non_string_container_name(self):
        with self.assertRaises(ManifestMalformed):
            parse_manifest('[{"ServiceName": "web", "ImageDefinitions": [{"name": 5, "imageUri": "repo/app:2.0"}]}]')

    def test_null_image_uri(self):
        with self.assertRaises(ManifestMalformed) as cm:
            parse_manifest('[{"ServiceName": "web", "ImageDefinitions": [{"name": "app", "imageUri": null}]}]')
        self.assertIn('imageUri', str(cm.exception))

    def test_bad_entry(self):
        with self.assertRaises(ManifestMalformed) as cm:
            parse_manifest('[{"ImageDefinitions": []}]')
        self.assertIn('servicename', str(cm.exception))


class TestReadManifestFile(unittest.TestCase):

    def setUp(self):
        self.dir = TempDirectory()

    def tearDown(self):
        self.dir.cleanup()

    def test_read(self):
        path = self.dir.write('imagedefinitions.json', json.dumps(MANIFEST), encoding='utf-8')
        self.assertEqual([r.service_name for r in read_manifest_file(path)], ['web', 'worker'])

    def test_invalid_utf8(self):
        path = self.dir.write(
            'imagedefinitions.json',
            b'[{"ServiceName": "web\xff", "ImageDefinitions": []}]'
        )
        with self.assertRaises(ManifestMalformed) as cm:
            read_manifest_file(path)
        self.assertIsInstance(cm.exception.error, UnicodeDecodeError)
        self.assertTrue(str(cm.exception).startswith('could not parse imagedefinitions.json: '))

    def test_missing_file(self):
        with self.assertRaises(ArtifactError):
            read_manifest_file(os.path.join(self.dir.path, 'nope.json'))

    def test_load_manifest(self):
        path = self.dir.write('imagedefinitions.json', json.dumps(MANIFEST), encoding='utf-8')
        other = self.dir.write('report.txt', 'ok', encoding='utf-8')
        self.assertEqual(len(load_manifest([other, path])), 2)
