"""Domain errors raised by the generation pipeline."""


class MockupStudioError(Exception):
    """Base class for pipeline errors that are safe to show to users."""


class MissingSourceError(MockupStudioError):
    """No source screenshot was supplied."""


class MissingCredentialsError(MockupStudioError):
    """The Gemini API key is not configured."""


class GenerationFailed(MockupStudioError):
    """Both image tiers were exhausted without producing an image."""


class RunInProgressError(MockupStudioError):
    """A generation run is already Running; runs never interleave."""


class RunCancelled(MockupStudioError):
    """The caller cancelled the run between attempts or jobs."""


class AssetNotFoundError(MockupStudioError):
    def __init__(self, asset_id: str):
        super().__init__(f"Asset not found: {asset_id}")
        self.asset_id = asset_id


class ExportFailed(MockupStudioError):
    """Bulk export failed as a whole. Retrying the export is always safe."""

    retryable = True
