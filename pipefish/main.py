from typing import Optional

import boto3
from cement import App, init_defaults
from cement.core.exc import CaughtSignal

import pipefish.core.adapters  # noqa:F401,F403  # pylint:disable=unused-import

from .controllers import Base, Deploy
from .core.aws import AWSSessionBuilder
from .exceptions import PipefishError

# configuration defaults
CONFIG = init_defaults('pipefish')
META = init_defaults('log.logging')
META['log.logging']['log_level_argument'] = ['-l', '--level']


# ------------------
# The cement app
# ------------------

class PipefishApp(App):
    """pipefish primary application."""

    class Meta:
        label = 'pipefish'

        config_defaults = CONFIG
        meta_defaults = META

        # call sys.exit() on close
        exit_on_close = True

        # load additional framework extensions
        extensions = [
            'yaml',
            'colorlog',
            'print',
        ]

        # configuration handler
        config_handler = 'yaml'

        # configuration file suffix
        config_file_suffix = '.yml'

        # handlers
        log_handler = 'colorlog'

        # register handlers
        handlers = [
            Base,
            Deploy,
        ]

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._boto3_session: Optional[boto3.session.Session] = None

    @property
    def boto3_session(self) -> boto3.session.Session:
        """
        Lazy build our ``boto3.session.Session``.  We only build it on request because
        not every command talks to AWS.

        Returns:
            A session configured from the ``aws:`` section of ``pipefish.yml``, if any.
        """
        if not self._boto3_session:
            self.log.debug('building boto3 session')
            self._boto3_session = AWSSessionBuilder().new(
                filename=self.pargs.pipefish_filename,
                use_aws_section=not self.pargs.no_use_aws_section
            )
        return self._boto3_session


# ==========================================
# entrypoint
# ==========================================


def main():
    with PipefishApp() as app:
        try:
            app.run()

        except AssertionError as e:
            print('AssertionError > %s' % e.args[0])
            app.exit_code = 1

            if app.debug is True:
                import traceback
                traceback.print_exc()

        except PipefishError as e:
            print('PipefishError > %s' % e)
            app.exit_code = 1

            if app.debug is True:
                import traceback
                traceback.print_exc()

        except CaughtSignal as e:
            # Default Cement signals are SIGINT and SIGTERM, exit 0 (non-error)
            print('\n%s' % e)
            app.exit_code = 0


if __name__ == '__main__':
    main()
