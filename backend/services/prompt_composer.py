"""
Build the image-generation instruction for a mockup.

Everything here is pure: the same settings and variant always produce the
same text, and every combination of settings produces some text.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from schemas.mockup import (
    BackgroundStyle,
    CameraAngle,
    ContentFit,
    DeviceType,
    LightingStyle,
    MockupSettings,
    Variant,
    coerce_enum,
)


@dataclass(frozen=True)
class ComposedPrompt:
    generation_instruction: str
    placement_directive: str


AUTO_DEVICE_CLAUSE = (
    "INTELLIGENT SELECTION: Analyze screenshot aspect ratio. "
    "If Portrait -> iPhone 15 Pro Max (Titanium). "
    "If Landscape -> MacBook Pro 16 M3 (Space Black). "
    "If Square -> iPad Pro. "
    "Render with physically correct materials (refraction, metal roughness)."
)

DEVICE_CLAUSES: dict[DeviceType, str] = {
    DeviceType.SMARTPHONE: (
        "iPhone 15 Pro Max, Natural Titanium Finish. Ceramic Shield front. "
        "Ultra-thin uniform bezels. Micro-reflections on chamfered edges."
    ),
    DeviceType.MARKETING_HERO: (
        "Futuristic 'Hero' Device. Frameless glass slab aesthetic. "
        "Floating presentation. Glowing subtle edge accents."
    ),
    DeviceType.LAPTOP: (
        "MacBook Pro 16-inch M3 Max. Space Black anodized aluminum. "
        "Liquid Retina XDR display (deep blacks). Open 90 degrees."
    ),
    DeviceType.DESKTOP: (
        "Apple Studio Display 5K. Aluminum stand. "
        "Minimalist desk setup with Magic Keyboard and Trackpad."
    ),
    DeviceType.TABLET: (
        "iPad Pro 12.9-inch. Thin aluminum chassis. Edge-to-Edge Liquid Retina display. "
        "Apple Pencil 2 magnetically attached."
    ),
    DeviceType.SMART_WATCH: (
        "Apple Watch Ultra 2. Titanium case (49mm). Orange Alpine Loop. "
        "Sapphire crystal display."
    ),
}

# (keywords, scene) checked in order against the detected app category
CATEGORY_SCENES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("food", "restaurant", "drink"),
        "GOURMET F&B SETTING: High-end restaurant table. Warm wood or marble texture. "
        "Soft ambient candlelight. Props: Wine glass (crystal), linen napkin, artisan bread. "
        "Bokeh highlights. Warm golden hour feel.",
    ),
    (
        ("finance", "fintech", "business"),
        "EXECUTIVE BUSINESS SETTING: Boardroom table or high-end desk. Leather desk pad. "
        "Props: Montblanc pen, espresso cup, Macbook edge. Cool professional lighting. "
        "City skyline bokeh outside window.",
    ),
    (
        ("health", "wellness", "yoga"),
        "WELLNESS SANCTUARY: Natural stone surface. Dappled sunlight through leaves. "
        "Props: Small succulent, rolled towel, herbal tea. Soft organic shadows. "
        "Zen atmosphere.",
    ),
)

# {props} is replaced by the blurred-props sentence (possibly empty)
ENVIRONMENT_CLAUSES: dict[BackgroundStyle, str] = {
    BackgroundStyle.STUDIO: (
        "Infinite Cyclorama Studio. Pure color backdrop matching brand palette. "
        "No distractions. Maximum focus on device."
    ),
    BackgroundStyle.OFFICE: (
        "Blurred Executive Office. Glass walls, mahogany tones. Depth of field (f/2.0). "
        "Professional atmosphere. {props}"
    ),
    BackgroundStyle.NATURE: (
        "Organic Nature Setting. Smooth river stones, moss, dappled sunlight. "
        "Zen garden aesthetic. {props}"
    ),
    BackgroundStyle.GRADIENT: (
        "Abstract Mesh Gradient (Aurora). High-end tech aesthetic. Smooth noise texture. "
        "Deep rich colors."
    ),
    BackgroundStyle.DARK: (
        'Matte Black Carbon Fiber. "Dark Mode" aesthetic. Low-key lighting. '
        "Cyberpunk LED accents. High contrast."
    ),
    BackgroundStyle.GEOMETRIC: (
        "3D Abstract Geometry. Glass prisms, subsurface scattering, floating shapes. "
        "Octane Render style."
    ),
    BackgroundStyle.CITY: (
        "Bokeh City Skyline at Twilight. Out-of-focus street lights. Urban luxury vibe."
    ),
}

THREE_POINT_BASELINE = (
    "THREE-POINT STUDIO SETUP: 1. Key Light (Softbox, 45 deg, Upper Left). "
    "2. Fill Light (Reflector, 30% intensity). "
    "3. Rim Light (Back accent, creates separation)."
)

# True when the clause builds on the three-point baseline
LIGHTING_CLAUSES: dict[LightingStyle, tuple[bool, str]] = {
    LightingStyle.SOFT: (
        True,
        "Emphasize soft, wrap-around Key light. Feathered shadows. High visibility. "
        "Commercial look.",
    ),
    LightingStyle.DRAMATIC: (
        True,
        "Increase Key/Rim contrast. Deep shadows. Silhouette effect. Moody cinematic feel.",
    ),
    LightingStyle.NEON: (
        False,
        "CYBERPUNK LIGHTING: Dual-tone Gel Lighting (Cyan Left / Magenta Right). "
        "Dark ambient. Reflective surfaces.",
    ),
    LightingStyle.NATURAL: (
        False,
        "GOLDEN HOUR: Warm sunlight (3500K) casting long, soft shadows from side window. "
        "Organic glow. Lens flare.",
    ),
    LightingStyle.STUDIO_BOX: (
        False,
        "COMMERCIAL LIGHTBOX: Pure white light. No harsh shadows. Maximum clarity. "
        "Apple Product Page style.",
    ),
}
DEFAULT_LIGHTING_TAIL = "Optimized for conversion."

PLACEMENT_DIRECTIVES: dict[ContentFit, str] = {
    ContentFit.COVER: (
        "PLACEMENT: Fill the device screen completely (Cover). Crop edges slightly if "
        "needed to avoid black bars, but keep the center content visible."
    ),
    ContentFit.CONTAIN: (
        "PLACEMENT: Fit the ENTIRE screenshot within the screen boundaries. If aspect "
        "ratios differ, add subtle letterboxing or pillarboxing (black bars). Do not crop "
        "important UI elements."
    ),
    ContentFit.TOP_ALIGN: (
        "PLACEMENT: Top-Align the screenshot content. If the aspect ratio of the screenshot "
        "is taller than the device screen, crop the bottom (simulating a scroll). Ensure "
        "the status bar/header is visible."
    ),
}

ANGLE_CLAUSES: dict[CameraAngle, str] = {
    CameraAngle.PERSPECTIVE: "CAMERA ANGLE: Classic 3/4 front perspective, slight downward tilt.",
    CameraAngle.FRONT: "CAMERA ANGLE: Straight-on front view, screen parallel to the sensor.",
    CameraAngle.ISOMETRIC: "CAMERA ANGLE: Isometric three-quarter view with parallel lines.",
    CameraAngle.FLOATING: (
        "CAMERA ANGLE: Device floating mid-air, gently tilted, soft contact shadow below."
    ),
    CameraAngle.TOP_DOWN: "CAMERA ANGLE: Flat-lay top-down view, screen facing the camera.",
}
AUTO_ANGLE_CLAUSE = (
    "CAMERA ANGLE: Choose the most flattering front-facing angle for this device."
)

VARIANT_B_CLAUSE = (
    "*** VARIANT B INSTRUCTION ***\n"
    "- CHANGE ANGLE: If Variant A was 3/4 view, make this slightly more top-down or a "
    "tighter close-up.\n"
    "- CHANGE LIGHTING: Shift the Key light position to create a different shadow pattern.\n"
    "- ALTERNATE PROPS: Use slightly different background elements while keeping the "
    "same theme."
)


def _enum_name(value: Any) -> str:
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def device_clause(device_type: Any) -> str:
    device = coerce_enum(DeviceType, device_type, None)  # type: ignore[arg-type]
    if device == DeviceType.AUTO:
        return AUTO_DEVICE_CLAUSE
    if device in DEVICE_CLAUSES:
        return DEVICE_CLAUSES[device]
    name = _enum_name(device_type).strip() or "device"
    return f"Premium {name} device. Realistic materials and accurate screen proportions."


def _props_sentence(props: Optional[Sequence[str]]) -> str:
    if not props:
        return ""
    return f"Background Props (Blurred): {', '.join(props)}."


def environment_clause(
    background_style: Any,
    app_category: Optional[str] = None,
    props: Optional[Sequence[str]] = None,
    custom_background: Optional[str] = None,
    color_mood: str = "",
) -> str:
    """
    Describe the scene around the device.

    Precedence: Custom text, then a category scene (Auto and Lifestyle only),
    then the per-style table, then a generic mood-driven scene.
    """
    style = coerce_enum(BackgroundStyle, background_style, None)  # type: ignore[arg-type]
    props_text = _props_sentence(props)

    if style == BackgroundStyle.CUSTOM:
        scene = (custom_background or "").strip() or "A generic clean studio background"
        return (
            f"CUSTOM SCENE GENERATION: {scene}. "
            "Ensure style matches the device realism."
        )

    if style in (BackgroundStyle.AUTO, BackgroundStyle.LIFESTYLE):
        category = (app_category or "general").lower()
        for keywords, scene in CATEGORY_SCENES:
            if any(keyword in category for keyword in keywords):
                return scene

    if style in ENVIRONMENT_CLAUSES:
        return ENVIRONMENT_CLAUSES[style].format(props=props_text).strip()

    return f"Professional environment matching the mood: {color_mood}. {props_text}".strip()


def lighting_clause(lighting: Any) -> str:
    style = coerce_enum(LightingStyle, lighting, None)  # type: ignore[arg-type]
    if style in LIGHTING_CLAUSES:
        on_baseline, text = LIGHTING_CLAUSES[style]
        return f"{THREE_POINT_BASELINE} {text}" if on_baseline else text
    return f"{THREE_POINT_BASELINE} {DEFAULT_LIGHTING_TAIL}"


def placement_directive(content_fit: Any) -> str:
    fit = coerce_enum(ContentFit, content_fit, ContentFit.COVER)
    return PLACEMENT_DIRECTIVES[fit]


def angle_clause(angle: Any) -> str:
    camera = coerce_enum(CameraAngle, angle, CameraAngle.AUTO)
    return ANGLE_CLAUSES.get(camera, AUTO_ANGLE_CLAUSE)


def variant_clause(variant: Any) -> str:
    if coerce_enum(Variant, variant, Variant.A) == Variant.B:
        return VARIANT_B_CLAUSE
    return ""


def _brand_alignment(settings: MockupSettings) -> str:
    lines = [
        "*** BRAND ALIGNMENT ***",
        f'- Tagline Vibe: "{settings.marketing_tagline or "Premium Quality"}"',
    ]
    if settings.detected_colors:
        lines.append(
            f"- COLOR PALETTE: Integrate {', '.join(settings.detected_colors)} into "
            "background props or ambient light tint."
        )
    if settings.description:
        lines.append(f"- USER INSTRUCTION: {settings.description}")
    return "\n".join(lines)


def compose_prompt(settings: MockupSettings, variant: Any = Variant.A) -> ComposedPrompt:
    placement = placement_directive(settings.content_fit)
    device = device_clause(settings.device_type)
    environment = environment_clause(
        settings.background_style,
        settings.detected_app_category or "general",
        settings.suggested_props,
        settings.custom_background_prompt,
        settings.color_mood,
    )
    lighting = lighting_clause(settings.lighting)
    camera = angle_clause(settings.angle)

    sections = [
        "ACT AS: A World-Class Product Photographer (Phase One XF IQ4 150MP) & "
        "Senior 3D Render Engine (Octane/Redshift).",
        "TASK: Create an ULTRA-PREMIUM marketing mockup using DUAL-LAYER COMPOSITE "
        "ARCHITECTURE.",
        "*** CRITICAL ANTI-HALLUCINATION PROTOCOL ***\n"
        "1. FRONT FACING ONLY: The device MUST be shown from the FRONT or 3/4 FRONT view. "
        "The SCREEN MUST BE VISIBLE to the camera.\n"
        "2. NO BACK-OF-DEVICE: Do NOT render the back case of the device. Do NOT apply the "
        "screenshot as a texture on the back of the device.\n"
        "3. SCREEN IS A SCREEN: The input image IS THE DIGITAL DISPLAY content. It emits "
        "light. It is NOT a sticker.",
        "=== LAYER 1: SCREEN CONTENT (ULTRA-HIGH FIDELITY) ===\n"
        '- INPUT PROCESSING: Treat the provided UI screenshot as a "Smart Object".\n'
        "- INTERNAL RESOLUTION: Upscale UI input 300% before mapping to the device to "
        'ensure "Retina" crispness.\n'
        "- TEXT PRESERVATION: Text MUST remain 100% legible and sharp. Do NOT hallucinate, "
        'blur, or "repaint" the UI text.\n'
        '- SHARPENING: Apply "High-Pass" sharpening filter ONLY to the screen layer.\n'
        "- TRANSFORMATION: Apply perspective transform (bicubic interpolation) to fit the "
        "device screen perfectly.\n"
        f"- {placement}",
        "=== LAYER 2: PHOTO-REALISTIC ENVIRONMENT (PHYSICS SIMULATION) ===\n"
        f"- {device}\n"
        f"- {environment}\n"
        f"- {lighting}\n"
        f"- {camera}\n"
        "- CAMERA: 85mm Prime Lens at f/2.8.\n"
        "- DEPTH OF FIELD: progressive Gaussian blur (Screen=0%, Mid=30%, "
        "Background=90% with Bokeh).\n"
        "- RENDER ENGINE SPECS: Global Illumination ON. Path-traced raytracing ON. "
        "Dielectric glass (IOR 1.5) for screen, anisotropic aluminum/titanium for body. "
        "Subtle reflective caustics from the bezel.",
        "=== COMPOSITE & FINISHING ===\n"
        "- SCREEN PHYSICS: Apply subtle 5% glass reflection and 12% screen glow OVER the "
        "UI layer, but ensure text is readable.\n"
        "- COLOR GRADING: If Lifestyle: Cinematic Teal/Orange (Warm highlights, Cool "
        "shadows). If Tech: Cool Professional (Crisp Whites, Deep Blues).\n"
        '- NO ARTIFACTS: Ensure no "AI hallucinations" or fuzzy edges on the UI. The '
        "result must be indistinguishable from a studio photo even at 200% zoom.",
    ]

    variant_text = variant_clause(variant)
    if variant_text:
        sections.append(variant_text)

    sections.append(_brand_alignment(settings))
    sections.append("Output: A photorealistic, 4K resolution marketing asset.")

    return ComposedPrompt(
        generation_instruction="\n\n".join(sections),
        placement_directive=placement,
    )
