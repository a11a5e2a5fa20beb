import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthState:
    user: Optional[UserResponse]
    is_loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and not self.is_loading


@dataclass(frozen=True)
class SessionContext:
    """The signed-in user, passed explicitly into every workflow operation."""
    user: UserResponse

    @property
    def user_id(self) -> str:
        return self.user.id


AuthListener = Callable[[AuthState], None]


class AuthStateStream:
    """Pushes every authentication change to its subscribers."""

    def __init__(self):
        self._listeners: list[AuthListener] = []
        self.current: Optional[AuthState] = None

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        if self.current is not None:
            listener(self.current)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, state: AuthState):
        self.current = state
        for listener in list(self._listeners):
            listener(state)


class SessionObserver:
    """
    Gates the marketplace views on authentication.

    Starts in ``loading``. Each pushed AuthState moves it to
    ``unauthenticated`` or ``authenticated``; entering ``authenticated``
    sets the session context and runs ``on_authenticated`` once per entry.
    """

    def __init__(
        self,
        stream: AuthStateStream,
        on_authenticated: Optional[Callable[[SessionContext], None]] = None
    ):
        self.state = SessionState.LOADING
        self.context: Optional[SessionContext] = None
        self._on_authenticated = on_authenticated
        self._unsubscribe = stream.subscribe(self.handle)

    def handle(self, auth_state: AuthState):
        if auth_state.is_loading:
            self.state = SessionState.LOADING
            return

        if auth_state.user is None:
            if self.state == SessionState.AUTHENTICATED:
                logger.info(f"Session ended for user {self.context.user_id}")
            self.state = SessionState.UNAUTHENTICATED
            self.context = None
            return

        entering = (
            self.state != SessionState.AUTHENTICATED
            or self.context is None
            or self.context.user_id != auth_state.user.id
        )
        self.state = SessionState.AUTHENTICATED
        self.context = SessionContext(user=auth_state.user)
        if entering and self._on_authenticated is not None:
            self._on_authenticated(self.context)

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    def close(self):
        self._unsubscribe()
