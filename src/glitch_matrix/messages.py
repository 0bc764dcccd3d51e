"""
``m.room.message`` content, tagged by ``msgtype``.

Example:
    >>> msg = decode_message({"msgtype": "m.text", "body": "hi"})
    >>> isinstance(msg, TextMessage)
    True
    >>> msg.to_dict()
    {'msgtype': 'm.text', 'body': 'hi'}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from glitch_matrix._types import ContentModel

HTML_FORMAT = "org.matrix.custom.html"


class ImageInfo(ContentModel):
    h: int | None = None
    w: int | None = None
    mimetype: str | None = None
    size: int | None = None


class FileInfo(ContentModel):
    mimetype: str | None = None
    size: int | None = None


class AudioInfo(ContentModel):
    duration: int | None = None
    mimetype: str | None = None
    size: int | None = None


class VideoInfo(ContentModel):
    duration: int | None = None
    h: int | None = None
    w: int | None = None
    mimetype: str | None = None
    size: int | None = None
    thumbnail_url: str | None = None
    thumbnail_info: ImageInfo | None = None


class TextMessage(ContentModel):
    msgtype: Literal["m.text"] = "m.text"
    body: str
    format: str | None = None
    formatted_body: str | None = None


class NoticeMessage(ContentModel):
    """A message from a bot; clients should never reply to these automatically."""

    msgtype: Literal["m.notice"] = "m.notice"
    body: str
    format: str | None = None
    formatted_body: str | None = None


class EmoteMessage(ContentModel):
    msgtype: Literal["m.emote"] = "m.emote"
    body: str
    format: str | None = None
    formatted_body: str | None = None


class ImageMessage(ContentModel):
    msgtype: Literal["m.image"] = "m.image"
    body: str
    url: str
    info: ImageInfo | None = None
    thumbnail_url: str | None = None
    thumbnail_info: ImageInfo | None = None


class FileMessage(ContentModel):
    msgtype: Literal["m.file"] = "m.file"
    body: str
    url: str
    filename: str | None = None
    info: FileInfo | None = None
    thumbnail_url: str | None = None
    thumbnail_info: ImageInfo | None = None


class AudioMessage(ContentModel):
    msgtype: Literal["m.audio"] = "m.audio"
    body: str
    url: str
    info: AudioInfo | None = None


class VideoMessage(ContentModel):
    msgtype: Literal["m.video"] = "m.video"
    body: str
    url: str
    info: VideoInfo | None = None


class LocationMessage(ContentModel):
    msgtype: Literal["m.location"] = "m.location"
    body: str
    geo_uri: str


Message = Annotated[
    Union[
        TextMessage,
        NoticeMessage,
        EmoteMessage,
        ImageMessage,
        FileMessage,
        AudioMessage,
        VideoMessage,
        LocationMessage,
    ],
    Field(discriminator="msgtype"),
]

MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)


def decode_message(data: Any) -> Message:
    """
    Decode ``m.room.message`` content.

    Raises:
        pydantic.ValidationError: If ``msgtype`` is unknown or fields are missing
    """
    return MESSAGE_ADAPTER.validate_python(data)


def html_notice(body: str, formatted_body: str) -> NoticeMessage:
    """Build a notice carrying an HTML rendition alongside the plain body."""
    return NoticeMessage(body=body, format=HTML_FORMAT, formatted_body=formatted_body)
