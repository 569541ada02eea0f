# Services are imported directly where needed so the Gemini SDK is only
# loaded by the modules that call it:
# from services.orchestrator import get_orchestrator
# from services.screenshot_analyzer import analyze_screenshot
# from services.storage import get_storage

__all__ = []
