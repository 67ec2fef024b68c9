"""Exception definitions for crafters-toolbox"""

from typing import Optional

from ..constants import ErrorCode


class ToolboxError(Exception):
    """Base exception for crafters-toolbox"""

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.error_code = error_code


class ConfigError(ToolboxError):
    """Configuration error"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIG_FORMAT_ERROR)


class PipelineError(ToolboxError):
    """Failure of one stage of a component pipeline"""
    pass


class SourceUnavailableError(PipelineError):
    """Component source could not be materialized locally"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.SOURCE_UNAVAILABLE)


class BuildFailedError(PipelineError):
    """Build process exited with a non-zero status"""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message, ErrorCode.BUILD_FAILED)
        self.returncode = returncode
        self.output = output

    def __str__(self) -> str:
        text = super().__str__()
        if self.output:
            return f"{text}\n{self.output}"
        return text


class ArtifactMissingError(PipelineError):
    """No artifact found in the build output"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ARTIFACT_MISSING)


class ArtifactAmbiguousError(PipelineError):
    """Candidates exist but none matches the artifact pattern"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.ARTIFACT_AMBIGUOUS)


class DeployFailedError(PipelineError):
    """Copying the artifact into the server tree failed"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.DEPLOY_FAILED)


class UnsupportedKindError(PipelineError):
    """Server flavor does not support this component kind"""

    def __init__(self, kind: str, server_type: str):
        super().__init__(
            f"{kind} components are not supported on {server_type}",
            ErrorCode.UNSUPPORTED_KIND
        )
        self.kind = kind
        self.server_type = server_type


class ManifestIOError(ToolboxError):
    """Deployment manifest could not be written"""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.MANIFEST_IO_ERROR)


class PipelineCancelledError(PipelineError):
    """Pipeline stopped because cancellation was requested"""

    def __init__(self, message: str = "Operation cancelled"):
        super().__init__(message, ErrorCode.CANCELLED)
