"""Configuration constants for podcast_feed.

All constants are re-exported from config.py for convenience.
"""

# General defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TIMEOUT_SECONDS = 20
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/119.0 Safari/537.36"
)
MIN_TIMEOUT_SECONDS = 1

# Feed redirection (itunes:new-feed-url)
REDIRECT_POLICY_BACKGROUND = "background"
REDIRECT_POLICY_FOLLOW = "follow"
REDIRECT_POLICY_IGNORE = "ignore"
DEFAULT_REDIRECT_POLICY = REDIRECT_POLICY_BACKGROUND
VALID_REDIRECT_POLICIES = (
    REDIRECT_POLICY_BACKGROUND,
    REDIRECT_POLICY_FOLLOW,
    REDIRECT_POLICY_IGNORE,
)
MAX_FEED_REDIRECTS = 5

# Validation constants
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Namespaces commonly found in podcast feeds, keyed by URI
KNOWN_NAMESPACES = {
    "http://www.itunes.com/dtds/podcast-1.0.dtd": "itunes",
    "http://www.w3.org/2005/Atom": "atom",
    "http://purl.org/rss/1.0/modules/content/": "content",
    "http://www.google.com/schemas/play-podcasts/1.0": "googleplay",
    "https://podcastindex.org/namespace/1.0": "podcast",
    "http://search.yahoo.com/mrss/": "media",
}
