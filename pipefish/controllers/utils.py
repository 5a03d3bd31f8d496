from collections.abc import Callable
from functools import wraps

import click

from pipefish.exceptions import PipefishError

# ========================
# Decorators
# ========================

def handle_deploy_exceptions(func: Callable) -> Callable:
    """
    This decorator catches all the kinds of exceptions we expect to see in normal
    operation while letting others display their stack traces normally.

    We use this decorator to wrap cement command methods on
    :py:class:`cement.ext.ext_argparse.ArgparseController` subclasses.
    """

    @wraps(func)
    def inner(self, *args, **kwargs):
        try:
            obj = func(self, *args, **kwargs)
        except PipefishError as e:
            self.app.print(click.style(str(e), fg="red"))
            self.app.exit_code = 1
        else:
            return obj
    return inner
