from typing import Any, Dict, Optional

from user_agents import parse as parse_ua

UA_FIELDS = ("is_mobile", "is_desktop", "is_bot", "browser", "version", "os", "platform")


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, Any]:
    """Derive the presentation fields stored on an event. No header, no fields."""
    if not user_agent:
        return {}

    ua = parse_ua(user_agent)
    return {
        "is_mobile": ua.is_mobile,
        "is_desktop": ua.is_pc,
        "is_bot": ua.is_bot,
        "browser": ua.browser.family,
        "version": ua.browser.version_string or None,
        "os": ua.os.family,
        "platform": ua.device.family,
    }
