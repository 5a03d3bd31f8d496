from pipefish.registry import importer_registry as registry

from .job import JobAdapter
from .manifest import ServiceUpdateRequestAdapter

# -----------------------
# Adapter registrations
# -----------------------

registry.register("Job", "codepipeline", JobAdapter)
registry.register("ServiceUpdateRequest", "imagedefinitions", ServiceUpdateRequestAdapter)
