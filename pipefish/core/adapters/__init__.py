from . import codepipeline  # noqa:F401
