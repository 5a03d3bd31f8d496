class PipefishError(Exception):
    """
    Base class for every error that ends a pipefish run.  Each of these is fatal: the entry point
    reports the message back to CodePipeline as a job failure and then re-raises.
    """
    pass


class ConfigurationError(PipefishError):
    """
    A required environment variable or SSM Parameter Store parameter is missing or unusable.
    """
    pass


class ArtifactError(PipefishError):
    """
    We could not download or unpack one of the pipeline's input artifacts.
    """
    pass


class ManifestNotFound(PipefishError):
    """
    None of the materialized artifact files is the deployment manifest.
    """
    def __init__(self, filename: str):
        super().__init__()
        self.filename = filename

    def __str__(self) -> str:
        return f"could not find {self.filename}"


class ManifestMalformed(PipefishError):
    """
    The deployment manifest exists but could not be decoded into service update requests.
    """
    def __init__(self, error: Exception, filename: str = None):
        super().__init__()
        self.error = error
        self.filename = filename

    def __str__(self) -> str:
        if self.filename:
            return f"could not parse {self.filename}: {self.error}"
        return f"could not parse manifest: {self.error}"


class ClusterQueryFailed(PipefishError):
    """
    Describing the services in our cluster, or one of their task definitions, failed.
    """
    pass


class ContainerNotFound(PipefishError):
    """
    The manifest names a container that does not exist in the service's current task definition.
    """
    def __init__(self, container_name: str, service_name: str = None):
        super().__init__()
        self.container_name = container_name
        self.service_name = service_name

    def __str__(self) -> str:
        if self.service_name:
            return f'could not find container "{self.container_name}" in the task definition for service ' \
                f'"{self.service_name}"'
        return f'could not find container "{self.container_name}"'


class RegistrationFailed(PipefishError):
    """
    AWS refused to register our new task definition revision.
    """
    pass


class ServiceUpdateFailed(PipefishError):
    """
    AWS refused to point a service at its new task definition revision.
    """
    pass


class OutcomeSignalFailed(PipefishError):
    """
    We could not tell CodePipeline whether the job succeeded or failed.
    """
    pass


class DeadlineExceeded(PipefishError):
    """
    The run's wall clock deadline passed before we could make our next AWS call.
    """
    pass
