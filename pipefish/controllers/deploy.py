import json
import os
from typing import Any, Dict, List, Optional, Sequence

from cement import Controller, ex
import click

from pipefish.config import Config
from pipefish.core.deadline import Deadline
from pipefish.core.deploy import Deployment
from pipefish.core.manifest import read_manifest_file
from pipefish.core.reconcile import PlannedUpdate
from pipefish.renderers import TableRenderer

from .utils import handle_deploy_exceptions


MANIFEST_ARGUMENT = (
    ['manifest'],
    {'help': 'Path to an imagedefinitions.json file'}
)

CLUSTER_ARGUMENTS = [
    (
        ['--cluster'],
        {
            'action': 'store',
            'dest': 'cluster',
            'default': None,
            'help': 'The ECS cluster to deploy to.  If not given, read it from SSM Parameter Store.'
        }
    ),
    (
        ['--project-id'],
        {
            'action': 'store',
            'dest': 'project_id',
            'default': None,
            'help': 'Read our settings from the SSM parameters under /PROJECT_ID.  Defaults to $PROJECT_ID.'
        }
    ),
]


class Deploy(Controller):

    class Meta:
        label = 'deploy-commands'
        stacked_on = 'base'
        stacked_type = 'embedded'

    plan_columns: Dict[str, Any] = {
        'Service': 'service',
        'Container': 'container',
        'Current image': {'key': 'current_image', 'default': '-'},
        'New image': 'new_image',
    }

    parameter_columns: Dict[str, Any] = {
        'Name': 'name',
        'Type': {'key': 'type', 'default': 'String'},
        'Value': 'display_value',
    }

    def get_config(self, deadline: Optional[Deadline] = None) -> Config:
        pargs = self.app.pargs
        timeout = getattr(pargs, 'timeout', None)
        if pargs.cluster:
            return Config.from_values(pargs.cluster, project_id=pargs.project_id, timeout=timeout)
        config = Config.new(os.environ, self.app.boto3_session, deadline=deadline, project_id=pargs.project_id)
        if timeout:
            config.timeout = timeout
        return config

    def render_plan(self, plan: Sequence[PlannedUpdate]) -> None:
        if not plan:
            self.app.print(click.style('No services in the cluster matched the manifest.', fg='yellow'))
            return
        rows: List[Dict[str, Any]] = []
        for update in plan:
            for change in update.changes:
                rows.append({
                    'service': update.service.name,
                    'container': change.container_name,
                    'current_image': change.current_image,
                    'new_image': change.new_image,
                })
        self.app.print(TableRenderer(self.plan_columns).render(rows))
        for update in plan:
            self.app.print(click.style(
                '\nService("{}"): {} -> new revision of "{}"'.format(
                    update.service.name,
                    update.current.pk,
                    update.candidate.family
                ),
                fg='cyan'
            ))
            self.app.print(json.dumps(update.diff(), indent=2, sort_keys=True))

    @ex(
        help="Show what deploying an imagedefinitions.json file would change",
        arguments=[MANIFEST_ARGUMENT] + CLUSTER_ARGUMENTS
    )
    @handle_deploy_exceptions
    def plan(self):
        """
        Plan the deployment of a manifest without registering or updating anything.
        """
        requests = read_manifest_file(self.app.pargs.manifest)
        config = self.get_config()
        plan = Deployment(config, self.app.boto3_session).plan(requests)
        self.render_plan(plan)

    @ex(
        help="Deploy the images in an imagedefinitions.json file to their ECS services",
        arguments=[MANIFEST_ARGUMENT] + CLUSTER_ARGUMENTS + [
            (
                ['--timeout'],
                {
                    'action': 'store',
                    'dest': 'timeout',
                    'type': float,
                    'default': None,
                    'help': 'Give up after this many seconds.  Defaults to $PIPEFISH_TIMEOUT, or 60.'
                }
            ),
        ]
    )
    @handle_deploy_exceptions
    def deploy(self):
        """
        Register a new task definition revision for every service in the manifest, and update each
        service to use it.
        """
        requests = read_manifest_file(self.app.pargs.manifest)
        timeout = self.app.pargs.timeout or Config.timeout_from_environ(os.environ)
        deadline = Deadline(timeout)
        config = self.get_config(deadline=deadline)
        self.app.log.info('deploying to cluster "{}" with {}'.format(config.cluster, deadline))
        result = Deployment(config, self.app.boto3_session, deadline).run(requests)
        if not result.deployed:
            self.app.print(click.style(result.summary, fg='yellow'))
        for update, arn in result.deployed:
            self.app.print(click.style(f'Service("{update.service.name}"): now using {arn}', fg='green'))

    @ex(
        help="List the SSM parameters pipefish reads its settings from",
        arguments=[CLUSTER_ARGUMENTS[1]]
    )
    @handle_deploy_exceptions
    def parameters(self):
        """
        Show every parameter under /PROJECT_ID, with SecureString values masked.
        """
        project_id = self.app.pargs.project_id or os.environ.get(Config.PROJECT_ID_VARIABLE)
        if not project_id:
            self.app.print(click.style(
                f'Give --project-id or set ${Config.PROJECT_ID_VARIABLE}', fg='red'
            ))
            self.app.exit_code = 1
            return
        parameters = Config.load_parameters(project_id, self.app.boto3_session)
        rows = [
            {'name': p.name, 'type': p.data.get('Type'), 'display_value': p.display_value}
            for p in parameters
        ]
        self.app.print(TableRenderer(self.parameter_columns, ordering='Name').render(rows))
