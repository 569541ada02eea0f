from .analysis import AnalyzeResponse
from .asset import AssetListResponse, GeneratedAsset, ReorderAssetsRequest
from .common import ErrorResponse, HealthResponse
from .generate import (
    CancelResponse,
    GenerateAcceptedResponse,
    RefineResponse,
    RunStateName,
    RunStatusResponse,
)
from .mockup import (
    COLOR_PRESETS,
    DEFAULT_SETTINGS,
    BackgroundStyle,
    CameraAngle,
    ContentFit,
    DeviceType,
    LightingStyle,
    MockupSettings,
    Variant,
    coerce_enum,
)

__all__ = [
    # Analysis
    "AnalyzeResponse",
    # Assets
    "AssetListResponse",
    "GeneratedAsset",
    "ReorderAssetsRequest",
    # Common
    "ErrorResponse",
    "HealthResponse",
    # Generate
    "CancelResponse",
    "GenerateAcceptedResponse",
    "RefineResponse",
    "RunStateName",
    "RunStatusResponse",
    # Settings
    "COLOR_PRESETS",
    "DEFAULT_SETTINGS",
    "BackgroundStyle",
    "CameraAngle",
    "ContentFit",
    "DeviceType",
    "LightingStyle",
    "MockupSettings",
    "Variant",
    "coerce_enum",
]
