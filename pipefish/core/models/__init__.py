from .abstract import *  # noqa:F401,F403
from .codepipeline import *  # noqa:F401,F403
from .ecs import *  # noqa:F401,F403
from .manifest import *  # noqa:F401,F403
from .s3 import *  # noqa:F401,F403
from .ssm import *  # noqa:F401,F403
