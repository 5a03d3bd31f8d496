import time
from typing import Any, Callable

from pipefish.exceptions import DeadlineExceeded


class Deadline:
    """
    A wall clock deadline for a single pipefish run.  We create one of these when the run starts and
    hand it to every :py:class:`pipefish.core.models.abstract.Manager`, which checks it before each
    AWS API call and uses it to bound its botocore socket timeouts.

    Args:
        seconds: how long from now the run may take

    Keyword Args:
        clock: the monotonic clock to use.  Tests replace this.
    """

    #: How long before Lambda would kill us we want our own deadline to pass, so that we still have time
    #: to report the failure to CodePipeline.
    LAMBDA_SAFETY_MARGIN: float = 5.0

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self.clock = clock
        self.expires_at = clock() + seconds

    @classmethod
    def for_lambda(cls, seconds: float, context: Any = None, **kwargs) -> "Deadline":
        """
        Build a deadline that is ``seconds`` from now, but never later than the point
        :py:attr:`LAMBDA_SAFETY_MARGIN` seconds before the Lambda ``context`` runs out of time.
        """
        if context is not None and hasattr(context, 'get_remaining_time_in_millis'):
            remaining = context.get_remaining_time_in_millis() / 1000.0 - cls.LAMBDA_SAFETY_MARGIN
            seconds = max(0.0, min(seconds, remaining))
        return cls(seconds, **kwargs)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self.clock())

    @property
    def expired(self) -> bool:
        return self.clock() >= self.expires_at

    def check(self, operation: str) -> None:
        """
        Raise :py:exc:`pipefish.exceptions.DeadlineExceeded` if our deadline has passed.

        Args:
            operation: the name of the AWS operation we were about to do, for the error message
        """
        if self.expired:
            raise DeadlineExceeded(
                f'run deadline of {self.seconds:g} seconds exceeded before {operation}'
            )

    def __str__(self) -> str:
        return f'Deadline(seconds={self.seconds:g}, remaining={self.remaining():.1f})'
