"""In-memory file contents and `blob:` object URLs for freshly saved assets."""

import mimetypes
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Union

from common.constants import DOC_EXTENSION_REGEX


@dataclass(frozen=True)
class Blob:
    """
    Immutable file content with a media type.
    """
    data: bytes
    type: str = ""
    name: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self) -> str:
        return self.data.decode("utf-8")


def get_blob(data: Union[str, bytes, Blob], name: Optional[str] = None) -> Blob:
    """
    Wrap text or bytes in a Blob. Text becomes UTF-8 `text/plain`; a name lets the
    media type be guessed from its extension.
    """
    if isinstance(data, Blob):
        return data

    guessed = mimetypes.guess_type(name)[0] if name else None

    if isinstance(data, str):
        return Blob(data.encode("utf-8"), guessed or "text/plain", name)

    return Blob(bytes(data), guessed or "application/octet-stream", name)


class BlobStore:
    """
    Registry of object URLs, so saved assets can be displayed before the next load.
    """

    SCHEME = "blob:"

    def __init__(self, origin: str = "repocms"):
        self.origin = origin
        self._blobs: Dict[str, Blob] = {}

    def create_object_url(self, blob: Blob) -> str:
        url = f"{self.SCHEME}{self.origin}/{uuid.uuid4()}"
        self._blobs[url] = blob
        return url

    def revoke_object_url(self, url: str) -> None:
        self._blobs.pop(url, None)

    def resolve(self, url: str) -> Optional[Blob]:
        return self._blobs.get(url)

    def __len__(self) -> int:
        return len(self._blobs)


def get_asset_kind(name: str) -> str:
    """
    Classify a file name as 'image', 'video', 'audio', 'document' or 'other'.
    """
    media_type = mimetypes.guess_type(name)[0] or ""
    top_level = media_type.split("/", 1)[0]

    if top_level in ("image", "video", "audio"):
        return top_level

    if DOC_EXTENSION_REGEX.search(name):
        return "document"

    return "other"
