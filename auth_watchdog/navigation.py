"""Navigation collaborators: the public-route classifier and a small
history-style navigator that publishes path changes to subscribers.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional

from api.utils.debug import print__navigation_debug
from auth_watchdog.config import DEFAULT_PUBLIC_ROUTES
from auth_watchdog.models import Location

NavigationListener = Callable[[Location], None]


class RouteClassifier:
    """Decides whether a path is reachable without authentication.

    The root path and any path whose first segment is a public route name
    (``/login``, ``/register/confirm``, ...) are public.
    """

    def __init__(self, public_routes: Iterable[str] = DEFAULT_PUBLIC_ROUTES):
        self.public_routes = frozenset(r.strip("/") for r in public_routes if r.strip("/"))

    def is_public(self, path: str) -> bool:
        path = (path or "/").split("?", 1)[0].split("#", 1)[0]
        first_segment = path.strip("/").split("/", 1)[0]
        if not first_segment:
            return True
        return first_segment in self.public_routes


class Navigator:
    """Current/previous location plus change notifications.

    Listeners are only called when the path actually changes, unless the
    caller passes ``force=True`` (a host re-reporting the current route so the
    watchdog's cooldown can decide whether to check it again). Redirects made
    through :meth:`redirect` are also queued in ``pending_redirects`` so an
    HTTP host can hand them back to the browser.
    """

    def __init__(self, initial_path: str = "/"):
        self.location = Location(path=initial_path)
        self.previous: Optional[Location] = None
        self.pending_redirects: List[Dict[str, Any]] = []
        self._listeners: List[NavigationListener] = []

    def subscribe(self, listener: NavigationListener) -> Callable[[], None]:
        """Register a listener; returns the function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def navigate(
        self,
        path: str,
        replace: bool = False,
        state: Optional[Dict[str, Any]] = None,
        search: str = "",
        force: bool = False,
    ) -> Location:
        new_location = Location(path=path, search=search, state=state or {})
        changed = force or new_location.path != self.location.path
        self.previous = self.location
        self.location = new_location
        print__navigation_debug(
            f"NAVIGATE {'(replace) ' if replace else ''}{self.previous.path} -> {path}"
        )
        if changed:
            for listener in list(self._listeners):
                listener(new_location)
        return new_location

    def redirect(
        self, path: str, replace: bool = True, state: Optional[Dict[str, Any]] = None
    ) -> Location:
        self.pending_redirects.append(
            {"path": path, "replace": replace, "state": _jsonable_state(state)}
        )
        return self.navigate(path, replace=replace, state=state)

    def take_redirects(self) -> List[Dict[str, Any]]:
        redirects, self.pending_redirects = self.pending_redirects, []
        return redirects


def login_redirect_state(location: Location) -> Dict[str, Any]:
    """Router state carried to the login page so it can send the user back."""
    return {"from": location}


def _jsonable_state(state: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    result = {}
    for key, value in (state or {}).items():
        result[key] = value.model_dump() if isinstance(value, Location) else value
    return result
