import os

from cement import Controller
from cement.utils.version import get_version_banner

from pipefish import get_version


VERSION_BANNER = """
pipefish-%s: Deploy new container images to AWS ECS services
---
%s
""" % (get_version(), get_version_banner())


def filename_envvar(s):
    if 'PIPEFISH_CONFIG_FILE' in os.environ:
        return os.environ['PIPEFISH_CONFIG_FILE']
    return s


class Base(Controller):
    class Meta:
        label = 'base'

        # text displayed at the top of --help output
        description = 'pipefish: Deploy new container images to AWS ECS services'

        # controller level arguments. ex: 'pipefish --version'
        arguments = [
            (['-v', '--version'], {'action': 'version', 'version': VERSION_BANNER}),
            (
                ['-f', '--filename'],
                {
                    'dest': 'pipefish_filename',
                    'action': 'store',
                    'default': 'pipefish.yml',
                    'help': 'Path to the pipefish config file',
                    'type': filename_envvar
                }
            ),
            (
                ['--no-use-aws-section'],
                {
                    'action': 'store_true',
                    'dest': 'no_use_aws_section',
                    'default': False,
                    'help': 'Ignore the aws: section in pipefish.yml'
                }
            ),
        ]

    def _default(self):
        """Default action if no sub-command is passed."""
        self.app.args.print_help()
