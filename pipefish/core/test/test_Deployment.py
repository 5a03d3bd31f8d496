import io
import unittest
import zipfile

from mock import Mock
from testfixtures import Replacer

import pipefish.core.adapters  # noqa:F401
from pipefish.config import Config
from pipefish.core.deploy import Deployment, DeploymentResult, fetch_manifest
from pipefish.core.models.codepipeline import Job
from pipefish.core.models.manifest import ImageUpdate, ServiceUpdateRequest
from pipefish.exceptions import ArtifactError, ContainerNotFound, ManifestNotFound, ServiceUpdateFailed


CLUSTER_ARN = 'arn:aws:ecs:us-west-2:123456789012:cluster/my-cluster'


def request(name, *updates):
    return ServiceUpdateRequest({'serviceName': name, 'imageUpdates': [ImageUpdate(*u) for u in updates]})


def service_data(name):
    return {
        'serviceName': name,
        'serviceArn': f'arn:aws:ecs:us-west-2:123456789012:service/my-cluster/{name}',
        'clusterArn': CLUSTER_ARN,
        'status': 'ACTIVE',
        'taskDefinition': f'arn:aws:ecs:us-west-2:123456789012:task-definition/{name}:1',
        'desiredCount': 2,
        'deploymentConfiguration': {'maximumPercent': 200, 'minimumHealthyPercent': 100},
    }


def task_definition_response(family, containers):
    return {
        'taskDefinition': {
            'taskDefinitionArn': f'arn:aws:ecs:us-west-2:123456789012:task-definition/{family}:1',
            'family': family,
            'revision': 1,
            'status': 'ACTIVE',
            'networkMode': 'bridge',
            'containerDefinitions': [{'name': n, 'image': i, 'memory': 256} for n, i in containers],
        }
    }


class DeploymentTestMixin:

    def make_deployment(self, services, task_definitions):
        """
        ``services`` is the list of service names ``describe_services`` will return, and ``task_definitions``
        maps family names to lists of ``(container_name, image)`` tuples.
        """
        self.ecs = Mock()
        self.ecs.describe_services = Mock(return_value={
            'services': [service_data(name) for name in services],
            'failures': [],
        })
        self.ecs.describe_task_definition = Mock(side_effect=lambda taskDefinition, include: task_definition_response(
            taskDefinition.rsplit('/', 1)[-1].split(':')[0],
            task_definitions[taskDefinition.rsplit('/', 1)[-1].split(':')[0]]
        ))
        self.ecs.register_task_definition = Mock(side_effect=lambda **kwargs: {
            'taskDefinition': {
                'taskDefinitionArn': f'arn:aws:ecs:us-west-2:123456789012:task-definition/{kwargs["family"]}:2'
            }
        })
        session = Mock()
        session.client = Mock(return_value=self.ecs)
        return Deployment(Config.from_values('my-cluster'), session)


class TestDeployment_run(DeploymentTestMixin, unittest.TestCase):

    def test_new_image_is_deployed(self):
        deployment = self.make_deployment(
            ['web'],
            {'web': [('app', 'repo/app:v1'), ('sidecar', 'repo/sidecar:v1')]}
        )
        result = deployment.run([request('web', ('app', 'repo/app:v2'))])
        self.ecs.register_task_definition.assert_called_once_with(
            family='web',
            networkMode='bridge',
            containerDefinitions=[
                {'name': 'app', 'image': 'repo/app:v2', 'memory': 256},
                {'name': 'sidecar', 'image': 'repo/sidecar:v1', 'memory': 256},
            ]
        )
        self.ecs.update_service.assert_called_once_with(
            cluster=CLUSTER_ARN,
            service='web',
            taskDefinition='arn:aws:ecs:us-west-2:123456789012:task-definition/web:2',
            desiredCount=2,
            deploymentConfiguration={'maximumPercent': 200, 'minimumHealthyPercent': 100},
        )
        self.assertEqual(result.task_definition_arns, ['arn:aws:ecs:us-west-2:123456789012:task-definition/web:2'])

    def test_service_not_in_cluster_is_ignored(self):
        deployment = self.make_deployment(['web'], {'web': [('app', 'repo/app:v1')]})
        result = deployment.run([request('worker', ('app', 'repo/app:v2'))])
        self.ecs.describe_services.assert_called_once_with(cluster='my-cluster', services=['worker'])
        self.ecs.register_task_definition.assert_not_called()
        self.ecs.update_service.assert_not_called()
        self.assertEqual(result.deployed, [])

    def test_missing_container_changes_nothing(self):
        deployment = self.make_deployment(
            ['web', 'worker'],
            {'web': [('app', 'repo/app:v1')], 'worker': [('app', 'repo/app:v1')]}
        )
        with self.assertRaises(ContainerNotFound) as cm:
            deployment.run([
                request('web', ('app', 'repo/app:v2')),
                request('worker', ('cache', 'repo/cache:v2')),
            ])
        self.assertEqual(cm.exception.container_name, 'cache')
        self.ecs.register_task_definition.assert_not_called()
        self.ecs.update_service.assert_not_called()

    def test_first_failure_stops_the_rollout(self):
        deployment = self.make_deployment(
            ['api', 'web'],
            {'api': [('app', 'repo/app:v1')], 'web': [('app', 'repo/app:v1')]}
        )
        self.ecs.update_service = Mock(side_effect=ServiceUpdateFailed('boom'))
        with self.assertRaises(ServiceUpdateFailed):
            deployment.run([request('api', ('app', 'repo/app:v2')), request('web', ('app', 'repo/app:v2'))])
        self.assertEqual(self.ecs.register_task_definition.call_count, 1)
        self.assertEqual(self.ecs.update_service.call_count, 1)

    def test_plan_changes_nothing(self):
        deployment = self.make_deployment(['web'], {'web': [('app', 'repo/app:v1')]})
        plan = deployment.plan([request('web', ('app', 'repo/app:v2'))])
        self.assertEqual(len(plan), 1)
        self.ecs.register_task_definition.assert_not_called()
        self.ecs.update_service.assert_not_called()


class TestDeploymentResult(unittest.TestCase):

    def test_execution_details(self):
        result = DeploymentResult([])
        first, second = Mock(), Mock()
        first.service.name = 'api'
        second.service.name = 'web'
        result.add(first, 'arn:aws:ecs:us-west-2:123456789012:task-definition/api:2')
        result.add(second, 'arn:aws:ecs:us-west-2:123456789012:task-definition/web:2')
        self.assertEqual(result.execution_details(), {
            'summary': 'Updated services: api, web',
            'percentComplete': 100,
            'externalExecutionId': 'arn:aws:ecs:us-west-2:123456789012:task-definition/api:2',
        })

    def test_nothing_deployed(self):
        details = DeploymentResult([]).execution_details()
        self.assertNotIn('externalExecutionId', details)
        self.assertEqual(details['percentComplete'], 100)


class TestFetchManifest(unittest.TestCase):

    EVENT = {
        'CodePipeline.job': {
            'id': 'job-1',
            'data': {
                'inputArtifacts': [{
                    'name': 'BuildOutput',
                    'location': {
                        'type': 'S3',
                        's3Location': {'bucketName': 'artifact-bucket', 'objectKey': 'pipeline/BuildOutput/abc'}
                    }
                }],
                'artifactCredentials': {
                    'accessKeyId': 'AKIAEXAMPLE',
                    'secretAccessKey': 'secret',
                    'sessionToken': 'token'
                }
            }
        }
    }

    def make_session(self, members):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, 'w') as archive:
            for name, contents in members.items():
                archive.writestr(name, contents)
        body = Mock()
        body.read = Mock(return_value=buf.getvalue())
        s3 = Mock()
        s3.get_object = Mock(return_value={'Body': body})
        session = Mock()
        session.client = Mock(return_value=s3)
        return session

    def test_loads_manifest_from_artifact(self):
        session = self.make_session({
            'imagedefinitions.json': '[{"ServiceName": "web", "ImageDefinitions": [{"name": "app", "imageUri": "repo/app:v2"}]}]'
        })
        requests = fetch_manifest(Job.new(self.EVENT, 'codepipeline'), session=session)
        self.assertEqual([r.service_name for r in requests], ['web'])

    def test_no_manifest_in_artifact(self):
        session = self.make_session({'report.txt': 'ok'})
        with self.assertRaises(ManifestNotFound):
            fetch_manifest(Job.new(self.EVENT, 'codepipeline'), session=session)

    def test_session_is_built_from_artifact_credentials(self):
        session = self.make_session({'imagedefinitions.json': '[]'})
        with Replacer() as r:
            builder = r('pipefish.core.deploy.AWSSessionBuilder.for_artifact_credentials', Mock(return_value=session))
            fetch_manifest(Job.new(self.EVENT, 'codepipeline'))
        builder.assert_called_once_with({
            'accessKeyId': 'AKIAEXAMPLE',
            'secretAccessKey': 'secret',
            'sessionToken': 'token'
        })

    def test_no_artifact_credentials(self):
        with self.assertRaises(ArtifactError):
            fetch_manifest(Job.new({'CodePipeline.job': {'id': 'job-1', 'data': {}}}, 'codepipeline'))
