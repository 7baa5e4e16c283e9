from .cookies import AuthCookieJar, cookie_domain
from .invalidator import SessionInvalidator
from .store import DURABLE_SESSION_KEYS, SessionStore
from .watcher import SessionWatcher

__all__ = ["AuthCookieJar", "DURABLE_SESSION_KEYS", "SessionInvalidator", "SessionStore", "SessionWatcher", "cookie_domain"]
