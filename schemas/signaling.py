from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# Inbound payloads. Every field is optional so a missing value reaches the hub
# as None and is reported through the ack instead of failing validation.

class JoinRoomRequest(BaseModel):
    roomId: Optional[str] = None

class LeaveRoomRequest(BaseModel):
    roomId: Optional[str] = None

class RequestOfferRequest(BaseModel):
    to: Optional[str] = None

class SessionDescriptionRequest(BaseModel):
    to: Optional[str] = None
    sdp: Optional[Any] = None

class IceCandidateRequest(BaseModel):
    to: Optional[str] = None
    candidate: Optional[Any] = None


# Acknowledgments

class CreateRoomResponse(BaseModel):
    roomId: str
    selfId: str
    participants: list[str]

class JoinRoomResponse(BaseModel):
    ok: bool = True
    selfId: str
    participants: list[str]

class ErrorResponse(BaseModel):
    error: str


# Server pushed events

class ConnectedEvent(BaseModel):
    socketId: str

class PeerEvent(BaseModel):
    socketId: str

class SessionDescriptionEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    sdp: Any

class IceCandidateEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    candidate: Any


# Websocket frames

class ClientFrame(BaseModel):
    event: str
    data: Optional[Any] = None
    ack: Optional[Union[int, str]] = None