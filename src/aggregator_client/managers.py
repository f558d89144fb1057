"""
Managers exposing account and inbox operations on top of the Dispatcher
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .credentials import Credential
from .dispatcher import APIResponse, Dispatcher
from .errors import MalformedResponseError, ValidationError
from .request_builder import HttpMethod, RequestBuilder, RequestDescriptor, new_request


class Manager:
    """
    Base for managers. Every manager shares one injected Dispatcher so all of
    them go through the same rate limiter.
    """

    def __init__(self, dispatcher: Dispatcher, credential: Credential = None):
        self.dispatcher = dispatcher
        self.credential = credential

    def request(self) -> RequestBuilder:
        """Request builder for this manager; authentication is required"""
        return new_request().requires_auth(True)

    def execute(self, request: RequestDescriptor) -> APIResponse:
        return self.dispatcher.execute(request, self.credential)


class InboxManager(Manager):
    """Private messages and inbox state"""

    def set_read(self, fullname: str, read: bool) -> None:
        path = "/api/read_message" if read else "/api/unread_message"
        self.execute(self.request().post(path).form({'id': fullname}).build())

    def read_all(self) -> None:
        self.execute(self.request().post("/api/read_all_messages").build())

    def compose(self, to: str, subject: str, body: str) -> None:
        """
        Send a private message

        Args:
            to: Username, or '/r/<name>' to message a community's moderators
            subject: Message subject
            body: Markdown body
        """
        if not to or not subject:
            raise ValidationError("Both recipient and subject are required")
        self.execute(self.request().post("/api/compose").form({
            'to': to,
            'subject': subject,
            'text': body,
        }).build())


class VoteDirection(int, Enum):
    UPVOTE = 1
    NO_VOTE = 0
    DOWNVOTE = -1


@dataclass(frozen=True)
class SubmissionBuilder:
    """Describes a new link or self post"""
    subreddit: str
    title: str
    url: Optional[str] = None
    self_text: Optional[str] = None
    send_replies: bool = True

    def to_form(self) -> Dict[str, Any]:
        if (self.url is None) == (self.self_text is None):
            raise ValidationError("A submission needs exactly one of url or self_text")
        form: Dict[str, Any] = {
            'sr': self.subreddit,
            'title': self.title,
            'sendreplies': self.send_replies,
        }
        if self.url is not None:
            form['kind'] = 'link'
            form['url'] = self.url
        else:
            form['kind'] = 'self'
            form['text'] = self.self_text
        return form


class AccountManager(Manager):
    """Voting, saving, replying and posting as the authenticated account"""

    def vote(self, fullname: str, direction: VoteDirection) -> None:
        self.execute(self.request().post("/api/vote").form({
            'id': fullname,
            'dir': VoteDirection(direction).value,
        }).build())

    def save(self, fullname: str) -> None:
        self.execute(self.request().post("/api/save").form({'id': fullname}).build())

    def unsave(self, fullname: str) -> None:
        self.execute(self.request().post("/api/unsave").form({'id': fullname}).build())

    def hide(self, *fullnames: str) -> None:
        self._hide("/api/hide", fullnames)

    def unhide(self, *fullnames: str) -> None:
        self._hide("/api/unhide", fullnames)

    def reply(self, parent_fullname: str, text: str) -> str:
        """
        Reply to a submission, comment or message

        Returns:
            Fullname of the new comment
        """
        response = self.execute(self.request().post("/api/comment").form({
            'thing_id': parent_fullname,
            'text': text,
        }).build())
        return self._created_fullname(response)

    def submit(self, submission: SubmissionBuilder) -> str:
        """
        Post a link or self post

        Not idempotent; do not wrap in a retry.

        Returns:
            Fullname of the new submission
        """
        response = self.execute(self.request().post("/api/submit").form(submission.to_form()).build())
        data = (response.data or {}).get('json', {}).get('data', {})
        if 'name' not in data:
            raise MalformedResponseError("Submit response did not include the new fullname")
        return data['name']

    def update_preferences(self, editor: "AccountPreferencesEditor") -> Dict[str, Any]:
        request = (self.request()
                   .method(HttpMethod.PATCH)
                   .path("/api/v1/me/prefs")
                   .form(editor.args)
                   .build())
        return self.execute(request).data or {}

    def _hide(self, path: str, fullnames: Iterable[str]) -> None:
        ids = ",".join(fullnames)
        if not ids:
            raise ValidationError("At least one fullname is required")
        self.execute(self.request().post(path).form({'id': ids}).build())

    @staticmethod
    def _created_fullname(response: APIResponse) -> str:
        try:
            things = response.data['json']['data']['things']
            return things[0]['data']['name']
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"Response did not include the created thing: {e}") from e


class AccountPreferencesEditor:
    """
    Collects preference changes to send with AccountManager.update_preferences

    Seeding from existing preferences keeps unchanged values as they are.
    """

    THUMBNAIL_DISPLAY = ("on", "off", "subreddit")

    def __init__(self, original: Optional[Dict[str, Any]] = None):
        self.args: Dict[str, Any] = dict(original or {})

    def lang(self, tag: str) -> "AccountPreferencesEditor":
        self.args['lang'] = tag
        return self

    def new_window(self, flag: bool) -> "AccountPreferencesEditor":
        self.args['newwindow'] = flag
        return self

    def thumbnail_display(self, preference: str) -> "AccountPreferencesEditor":
        if preference not in self.THUMBNAIL_DISPLAY:
            raise ValidationError(f"Thumbnail display must be one of {', '.join(self.THUMBNAIL_DISPLAY)}")
        self.args['media'] = preference
        return self

    def hide_nsfw_thumbnails(self, flag: bool) -> "AccountPreferencesEditor":
        self.args['no_profanity'] = flag
        return self

    def show_spotlight_box(self, flag: bool) -> "AccountPreferencesEditor":
        self.args['organic'] = flag
        return self

    def min_link_score(self, score: Optional[int]) -> "AccountPreferencesEditor":
        """None clears the threshold so every link is shown"""
        self.args['min_link_score'] = score
        return self

    def min_comment_score(self, score: Optional[int]) -> "AccountPreferencesEditor":
        self.args['min_comment_score'] = score
        return self

    def num_comments(self, count: int) -> "AccountPreferencesEditor":
        self.args['num_comments'] = self._bounded('num_comments', count, 1, 500)
        return self

    def num_sites(self, count: int) -> "AccountPreferencesEditor":
        self.args['numsites'] = self._bounded('numsites', count, 1, 100)
        return self

    @staticmethod
    def _bounded(key: str, value: int, low: int, high: int) -> int:
        if not low <= value <= high:
            raise ValidationError(f"{key} must be between {low} and {high}")
        return value
