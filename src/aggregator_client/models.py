"""
Thin domain models, one variant per listing kind

Only the fields the client itself relies on are lifted out of the raw data;
everything else stays available through `data`.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .listing import ListingDecoder


@dataclass(frozen=True)
class Thing:
    """Base for every entity the service returns"""
    id: str
    name: str
    data: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    KIND = ""

    @property
    def fullname(self) -> str:
        return self.name

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "Thing":
        thing_id = data['id']
        return cls(id=thing_id, name=data.get('name') or f"{cls.KIND}_{thing_id}", data=data)


@dataclass(frozen=True)
class Comment(Thing):
    KIND = "t1"

    @property
    def body(self) -> str:
        return self.data.get('body', '')

    @property
    def author(self) -> Optional[str]:
        return self.data.get('author')


@dataclass(frozen=True)
class Account(Thing):
    KIND = "t2"


@dataclass(frozen=True)
class Submission(Thing):
    KIND = "t3"

    @property
    def title(self) -> str:
        return self.data.get('title', '')

    @property
    def is_self_post(self) -> bool:
        return bool(self.data.get('is_self', False))


@dataclass(frozen=True)
class Message(Thing):
    KIND = "t4"

    @property
    def subject(self) -> str:
        return self.data.get('subject', '')

    @property
    def is_read(self) -> bool:
        # The service reports unread state through the 'new' flag
        return not self.data.get('new', False)


@dataclass(frozen=True)
class Subreddit(Thing):
    KIND = "t5"

    @property
    def display_name(self) -> str:
        return self.data.get('display_name', '')


MODEL_KINDS = {model.KIND: model for model in (Comment, Account, Submission, Message, Subreddit)}


def default_decoder(*models: type) -> ListingDecoder:
    """
    Decoder for the given model variants, or all of them

    Kinds outside the selection are skipped by the decoder like any unknown kind.
    """
    selected = models or tuple(MODEL_KINDS.values())
    return ListingDecoder({model.KIND: model.from_data for model in selected})
