from copy import deepcopy
import datetime
import unittest

from botocore.exceptions import ClientError
from mock import Mock
from testfixtures import compare

from pipefish.core.models.ecs import ContainerDefinition, TaskDefinition, TaskDefinitionManager
from pipefish.exceptions import ClusterQueryFailed, RegistrationFailed


TASK_DEFINITION = {
    'taskDefinitionArn': 'arn:aws:ecs:us-west-2:123456789012:task-definition/web:7',
    'family': 'web',
    'taskRoleArn': 'arn:aws:iam::123456789012:role/web-task',
    'executionRoleArn': 'arn:aws:iam::123456789012:role/web-exec',
    'networkMode': 'awsvpc',
    'revision': 7,
    'volumes': [],
    'status': 'ACTIVE',
    'requiresAttributes': [{'name': 'com.amazonaws.ecs.capability.ecr-auth'}],
    'placementConstraints': [],
    'compatibilities': ['EC2', 'FARGATE'],
    'requiresCompatibilities': ['FARGATE'],
    'cpu': '512',
    'memory': '1024',
    'registeredAt': datetime.datetime(2024, 1, 1, 12, 0, 0),
    'registeredBy': 'arn:aws:sts::123456789012:assumed-role/deployer',
    'containerDefinitions': [
        {
            'name': 'nginx',
            'image': 'repo/nginx:1.0',
            'essential': True,
            'portMappings': [{'containerPort': 443, 'protocol': 'tcp'}],
        },
        {
            'name': 'app',
            'image': 'repo/app:1.0',
            'essential': True,
            'environment': [{'name': 'DEBUG', 'value': 'False'}],
        },
    ],
}


def describe_response(data=None, tags=None):
    response = {'taskDefinition': deepcopy(data if data else TASK_DEFINITION)}
    if tags is not None:
        response['tags'] = tags
    return response


def make_manager(client):
    session = Mock()
    session.client = Mock(return_value=client)
    return TaskDefinitionManager(session)


class TestTaskDefinitionManager_get(unittest.TestCase):

    def setUp(self):
        self.client = Mock()
        self.client.describe_task_definition = Mock(
            return_value=describe_response(tags=[{'key': 'team', 'value': 'ads'}])
        )
        self.manager = make_manager(self.client)

    def test_describes_with_tags(self):
        self.manager.get('web:7')
        self.client.describe_task_definition.assert_called_once_with(taskDefinition='web:7', include=['TAGS'])

    def test_containers_are_split_out_in_aws_order(self):
        td = self.manager.get('web:7')
        self.assertEqual([c.name for c in td.containers], ['nginx', 'app'])
        self.assertNotIn('containerDefinitions', td.data)

    def test_tags_are_attached(self):
        td = self.manager.get('web:7')
        self.assertEqual(td.data['tags'], [{'key': 'team', 'value': 'ads'}])

    def test_pk(self):
        td = self.manager.get('web:7')
        self.assertEqual(td.pk, 'web:7')
        self.assertEqual(td.arn, TASK_DEFINITION['taskDefinitionArn'])

    def test_api_failure_raises_ClusterQueryFailed(self):
        self.client.describe_task_definition.side_effect = ClientError(
            {'Error': {'Code': 'ClientException', 'Message': 'Unable to describe task definition.'}},
            'DescribeTaskDefinition'
        )
        with self.assertRaises(ClusterQueryFailed) as cm:
            self.manager.get('web:7')
        self.assertIn('Unable to describe task definition.', str(cm.exception))


class TestTaskDefinition_copy(unittest.TestCase):

    def setUp(self):
        client = Mock()
        client.describe_task_definition = Mock(return_value=describe_response())
        self.td = make_manager(client).get('web:7')

    def test_readonly_keys_are_stripped(self):
        candidate = self.td.copy()
        for key in TaskDefinition.READONLY_KEYS:
            self.assertNotIn(key, candidate.data)

    def test_candidate_pk_is_family(self):
        self.assertEqual(self.td.copy().pk, 'web')

    def test_changing_candidate_leaves_original_alone(self):
        candidate = self.td.copy()
        candidate.get_container('app').image = 'repo/app:2.0'
        self.assertEqual(self.td.get_container('app').image, 'repo/app:1.0')
        self.assertEqual(candidate.get_container('app').image, 'repo/app:2.0')

    def test_render_for_create_keeps_configuration(self):
        payload = self.td.copy().render_for_create()
        compare(payload, {
            'family': 'web',
            'taskRoleArn': 'arn:aws:iam::123456789012:role/web-task',
            'executionRoleArn': 'arn:aws:iam::123456789012:role/web-exec',
            'networkMode': 'awsvpc',
            'volumes': [],
            'placementConstraints': [],
            'requiresCompatibilities': ['FARGATE'],
            'cpu': '512',
            'memory': '1024',
            'containerDefinitions': TASK_DEFINITION['containerDefinitions'],
        })

    def test_copy_is_stable(self):
        self.assertEqual(self.td.copy().render_for_create(), self.td.copy().render_for_create())

    def test_diff_shows_only_the_image(self):
        candidate = self.td.copy()
        candidate.get_container('app').image = 'repo/app:2.0'
        diff = candidate.diff(self.td)
        self.assertEqual(list(diff.keys()), ['$update'])
        self.assertEqual(list(diff['$update'].keys()), ['containerDefinitions'])


class TestTaskDefinition_get_container(unittest.TestCase):

    def setUp(self):
        data = deepcopy(TASK_DEFINITION)
        containers = data.pop('containerDefinitions')
        self.td = TaskDefinition(data, containers=[ContainerDefinition(c) for c in containers])

    def test_container_index_is_sorted(self):
        names, containers = self.td.container_index()
        self.assertEqual(names, ['app', 'nginx'])
        self.assertEqual([c.name for c in containers], ['app', 'nginx'])

    def test_found(self):
        self.assertEqual(self.td.get_container('nginx').image, 'repo/nginx:1.0')

    def test_not_found(self):
        self.assertIsNone(self.td.get_container('redis'))
        self.assertIsNone(self.td.get_container('zzz'))


class TestTaskDefinitionManager_save(unittest.TestCase):

    def setUp(self):
        self.client = Mock()
        self.client.describe_task_definition = Mock(return_value=describe_response(tags=[]))
        self.client.register_task_definition = Mock(return_value={
            'taskDefinition': {'taskDefinitionArn': 'arn:aws:ecs:us-west-2:123456789012:task-definition/web:8'}
        })
        self.manager = make_manager(self.client)
        self.candidate = self.manager.get('web:7').copy()

    def test_returns_new_arn(self):
        arn = self.manager.save(self.candidate)
        self.assertEqual(arn, 'arn:aws:ecs:us-west-2:123456789012:task-definition/web:8')

    def test_empty_tags_are_not_sent(self):
        self.manager.save(self.candidate)
        _, kwargs = self.client.register_task_definition.call_args
        self.assertNotIn('tags', kwargs)
        self.assertEqual(kwargs['family'], 'web')

    def test_api_failure_raises_RegistrationFailed(self):
        self.client.register_task_definition.side_effect = ClientError(
            {'Error': {'Code': 'ClientException', 'Message': 'Too many revisions'}},
            'RegisterTaskDefinition'
        )
        with self.assertRaises(RegistrationFailed) as cm:
            self.manager.save(self.candidate)
        self.assertIn('Too many revisions', str(cm.exception))
