"""
Paginator module for walking cursor-based listings in either direction
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Iterator, List, Mapping, Optional, Tuple, TypeVar, Union

from .credentials import Credential
from .dispatcher import Dispatcher
from .errors import EndOfStreamError, ValidationError
from .listing import ListingDecoder, Page
from .models import Comment, Message, Submission, Subreddit, default_decoder
from .request_builder import new_request


DEFAULT_LIMIT = 25
RECOMMENDED_MAX_LIMIT = 100

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"

    @property
    def cursor_param(self) -> str:
        return 'after' if self is Direction.FORWARD else 'before'


@dataclass(frozen=True)
class NotStarted:
    """No page fetched yet"""


@dataclass(frozen=True)
class Active:
    """Mid-stream; cursor points at the next page in direction"""
    cursor: str
    direction: Direction


@dataclass(frozen=True)
class Exhausted:
    """The last page in direction has been returned"""
    direction: Direction


PaginatorState = Union[NotStarted, Active, Exhausted]


@dataclass(frozen=True)
class ListingEndpoint:
    """
    Where a listing lives and which 'where' values it accepts

    The request path is '{uri_prefix}/{where}'. An empty where_values tuple
    accepts any value, including none.
    """
    uri_prefix: str
    where_values: Tuple[str, ...] = ()
    requires_auth: bool = False
    extra_params: Dict[str, Any] = field(default_factory=dict)

    def path_for(self, where: Optional[str]) -> str:
        if self.where_values and where not in self.where_values:
            raise ValidationError(
                f"'{where}' is not valid for {self.uri_prefix or '/'}; "
                f"expected one of {', '.join(self.where_values)}"
            )
        prefix = self.uri_prefix.rstrip('/')
        if where:
            return f"{prefix}/{where}"
        return prefix or '/'


class Paginator(Generic[T]):
    """
    Cursor walker over one logical listing

    Not safe for concurrent use: each thread should own its paginator. Many
    paginators may share one Dispatcher.
    """

    def __init__(self, dispatcher: Dispatcher, decoder: ListingDecoder,
                 endpoint: ListingEndpoint, where: Optional[str] = None,
                 credential: Credential = None, limit: int = DEFAULT_LIMIT,
                 params: Optional[Mapping[str, Any]] = None):
        endpoint.path_for(where)
        self.dispatcher = dispatcher
        self.decoder = decoder
        self.endpoint = endpoint
        self.credential = credential
        self._where = where
        self._params: Dict[str, Any] = dict(params or {})
        self._limit = self._validate_limit(limit)
        self._state: PaginatorState = NotStarted()
        self._last_page: Optional[Page] = None
        self._pages_fetched = 0

    @property
    def state(self) -> PaginatorState:
        return self._state

    @property
    def direction(self) -> Optional[Direction]:
        if isinstance(self._state, NotStarted):
            return None
        return self._state.direction

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        """Change the page size. Resets the paginator."""
        self._limit = self._validate_limit(value)
        self.reset()

    @property
    def where(self) -> Optional[str]:
        return self._where

    @property
    def params(self) -> Dict[str, Any]:
        return dict(self._params)

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    def set_where(self, where: Optional[str]) -> None:
        """Switch to another 'where' value. Resets the paginator."""
        self.endpoint.path_for(where)
        self._where = where
        self.reset()

    def set_params(self, params: Mapping[str, Any]) -> None:
        """Replace filter/sort parameters. Resets the paginator."""
        self._params = dict(params)
        self.reset()

    def has_next(self) -> bool:
        return self._can_move(Direction.FORWARD)

    def has_previous(self) -> bool:
        return self._can_move(Direction.BACKWARD)

    def next(self) -> Page:
        """
        Fetch the next page forward

        Returns:
            The fetched Page; it may be empty yet still have an 'after' cursor

        Raises:
            EndOfStreamError: If the forward direction is exhausted
        """
        return self._fetch(Direction.FORWARD)

    def previous(self) -> Page:
        """
        Fetch the previous page, walking backward with the 'before' cursor

        Raises:
            EndOfStreamError: If the backward direction is exhausted
        """
        return self._fetch(Direction.BACKWARD)

    def accumulate(self, max_pages: int) -> List[Page]:
        """
        Fetch up to max_pages pages forward

        Stops early, without raising, when the listing runs out.
        """
        if max_pages < 1:
            raise ValidationError("max_pages must be at least 1")

        pages: List[Page] = []
        while len(pages) < max_pages and self.has_next():
            pages.append(self.next())
        return pages

    def reset(self) -> None:
        """Return to the start of the listing, discarding any cursor"""
        self._state = NotStarted()
        self._last_page = None
        self._pages_fetched = 0

    def __iter__(self) -> Iterator[Page]:
        while self.has_next():
            yield self.next()

    def _can_move(self, direction: Direction) -> bool:
        state = self._state
        if isinstance(state, NotStarted):
            return True
        if state.direction is direction:
            return isinstance(state, Active)
        # Switching direction continues from the edge of the last page
        return self._cursor_for(direction) is not None

    def _cursor_for(self, direction: Direction) -> Optional[str]:
        state = self._state
        if isinstance(state, Active) and state.direction is direction:
            return state.cursor
        if self._last_page is None:
            return None
        return self._last_page.after if direction is Direction.FORWARD else self._last_page.before

    def _fetch(self, direction: Direction) -> Page:
        if not self._can_move(direction):
            raise EndOfStreamError(f"No more pages {direction.value} for {self._describe()}")

        cursor = None if isinstance(self._state, NotStarted) else self._cursor_for(direction)

        builder = (new_request()
                   .get(self.endpoint.path_for(self._where))
                   .requires_auth(self.endpoint.requires_auth)
                   .params(self.endpoint.extra_params)
                   .params(self._params)
                   .param('limit', self._limit))
        if cursor is not None:
            builder = builder.param(direction.cursor_param, cursor)
        request = builder.build()

        response = self.dispatcher.execute(request, self.credential)
        page = self.decoder.decode(response.data)

        # Only a fully fetched and decoded page moves the state
        next_cursor = page.after if direction is Direction.FORWARD else page.before
        if next_cursor is not None:
            self._state = Active(next_cursor, direction)
        else:
            self._state = Exhausted(direction)
        self._last_page = page
        self._pages_fetched += 1

        logger.debug(
            f"Fetched page {self._pages_fetched} ({len(page)} items, {page.skipped_count} skipped) "
            f"{direction.value} from {request.path}; state is now {self._state}"
        )
        return page

    def _describe(self) -> str:
        return self.endpoint.path_for(self._where)

    @staticmethod
    def _validate_limit(limit: int) -> int:
        if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= RECOMMENDED_MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {RECOMMENDED_MAX_LIMIT}, got {limit!r}")
        return limit


INBOX_WHERE = ("inbox", "unread", "messages", "sent", "moderator", "moderator/unread")
USER_CONTRIBUTION_WHERE = ("overview", "submitted", "comments", "liked", "disliked",
                           "hidden", "saved", "gilded")
SUBREDDIT_SORTING = ("hot", "new", "rising", "controversial", "top")
USER_SUBREDDITS_WHERE = ("subscriber", "contributor", "moderator")


class PaginatorFactory:
    """Factory for the listings the service exposes"""

    STRATEGIES = {
        'inbox': '_inbox',
        'user_contributions': '_user_contributions',
        'subreddit': '_subreddit',
        'user_subreddits': '_user_subreddits',
    }

    @classmethod
    def create(cls, listing: str, dispatcher: Dispatcher, credential: Credential = None,
               **options: Any) -> Paginator:
        """
        Create a paginator for a named listing

        Args:
            listing: One of the names in STRATEGIES
            dispatcher: Shared dispatcher
            credential: Credential used for every page
            **options: Listing specific options ('where', 'username', 'subreddit', 'sorting', 'limit')

        Raises:
            ValueError: If the listing name is unknown
        """
        if listing not in cls.STRATEGIES:
            raise ValueError(f"Unsupported listing: {listing}")

        builder = getattr(cls, cls.STRATEGIES[listing])
        return builder(dispatcher, credential, **options)

    @staticmethod
    def _inbox(dispatcher: Dispatcher, credential: Credential,
               where: str = "inbox", limit: int = DEFAULT_LIMIT) -> Paginator:
        endpoint = ListingEndpoint("/message", INBOX_WHERE, requires_auth=True)
        return Paginator(dispatcher, default_decoder(Message, Comment), endpoint,
                         where=where, credential=credential, limit=limit)

    @staticmethod
    def _user_contributions(dispatcher: Dispatcher, credential: Credential, username: str,
                            where: str = "overview", limit: int = DEFAULT_LIMIT) -> Paginator:
        if not username:
            raise ValidationError("username is required")
        # Votes, hidden and saved items are private to the account owner
        private = where in ("liked", "disliked", "hidden", "saved")
        endpoint = ListingEndpoint(f"/user/{username}", USER_CONTRIBUTION_WHERE, requires_auth=private)
        return Paginator(dispatcher, default_decoder(Comment, Submission), endpoint,
                         where=where, credential=credential, limit=limit)

    @staticmethod
    def _subreddit(dispatcher: Dispatcher, credential: Credential, subreddit: Optional[str] = None,
                   sorting: str = "hot", time_period: Optional[str] = None,
                   limit: int = DEFAULT_LIMIT) -> Paginator:
        prefix = f"/r/{subreddit}" if subreddit else ""
        params = {'t': time_period} if time_period and sorting in ("controversial", "top") else None
        endpoint = ListingEndpoint(prefix, SUBREDDIT_SORTING, requires_auth=False)
        return Paginator(dispatcher, default_decoder(Submission), endpoint,
                         where=sorting, credential=credential, limit=limit, params=params)

    @staticmethod
    def _user_subreddits(dispatcher: Dispatcher, credential: Credential,
                         where: str = "subscriber", limit: int = DEFAULT_LIMIT) -> Paginator:
        endpoint = ListingEndpoint("/subreddits/mine", USER_SUBREDDITS_WHERE, requires_auth=True)
        return Paginator(dispatcher, default_decoder(Subreddit), endpoint,
                         where=where, credential=credential, limit=limit)
