"""Inbound WebSocket message schemas."""

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as SchemaError
from typing import Annotated, Any, Literal, Optional, Union

from errors import ProtocolError

# Tag errors mean "not a message we handle"; those frames are ignored.
_IGNORED_ERRORS = {"union_tag_invalid", "union_tag_not_found"}


class _Message(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Field content is checked by the validation module so replies carry
# room-specific wording; the schema only fixes the shape.
class CreateRoomMessage(_Message):
    type: Literal["create_room"]
    name: Any = None


class JoinRoomMessage(_Message):
    type: Literal["join_room"]
    name: Any = None
    roomCode: Any = None


class StartRoundMessage(_Message):
    type: Literal["start_round"]


class SelectCardMessage(_Message):
    type: Literal["select_card"]
    card: Any = None


class RevealCardsMessage(_Message):
    type: Literal["reveal_cards"]


class ResetRoundMessage(_Message):
    type: Literal["reset_round"]


class CloseRevealMessage(_Message):
    type: Literal["close_reveal"]


InboundMessage = Annotated[
    Union[
        CreateRoomMessage,
        JoinRoomMessage,
        StartRoundMessage,
        SelectCardMessage,
        RevealCardsMessage,
        ResetRoundMessage,
        CloseRevealMessage,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter = TypeAdapter(InboundMessage)


def parse_message(data: str) -> Optional[InboundMessage]:
    """Parse a raw frame.

    Returns None for frames whose ``type`` is missing or unknown and raises
    ProtocolError when the payload is not a JSON object.
    """
    try:
        return _adapter.validate_json(data)
    except SchemaError as e:
        errors = e.errors()
        if errors and all(err["type"] in _IGNORED_ERRORS for err in errors):
            return None
        raise ProtocolError("Invalid message format") from e
