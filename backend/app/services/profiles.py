import random
from typing import Optional, Sequence, Tuple
from backend.app.models.schemas import RequestProfile

USER_AGENTS = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15',
)

BROWSER_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'Accept-Encoding': 'gzip, deflate, br',
    'DNT': '1',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}

def _browser_profile(name: str, user_agent: str) -> RequestProfile:
    return RequestProfile(name=name, headers={'User-Agent': user_agent, **BROWSER_HEADERS})

DEFAULT_PROFILES: Tuple[RequestProfile, ...] = (
    _browser_profile("chrome-windows", USER_AGENTS[0]),
    _browser_profile("chrome-macos", USER_AGENTS[1]),
    _browser_profile("firefox-windows", USER_AGENTS[2]),
    _browser_profile("safari-macos", USER_AGENTS[3]),
)

# Resolver defaults only, used when every identity header is suspect
MINIMAL_PROFILE = RequestProfile(name="minimal")

class ProfilePool:
    """Read-only set of client identities, drawn in a random but seedable order."""

    def __init__(self, profiles: Sequence[RequestProfile] = DEFAULT_PROFILES, rng: Optional[random.Random] = None):
        if not profiles:
            raise ValueError("ProfilePool needs at least one profile")
        self.profiles = tuple(profiles)
        self.rng = rng or random.Random()

    def ladder(self, size: int) -> list[RequestProfile]:
        """Return up to `size` distinct profiles, each one equally likely to lead."""
        size = max(1, min(size, len(self.profiles)))
        return self.rng.sample(self.profiles, size)
