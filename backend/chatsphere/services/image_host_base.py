"""
ChatSphere Backend: Abstract Image Host Interface
=================================================

What:  Abstract base class defining the contract for avatar image hosting.
How:   Concrete implementations inherit from ImageHostService and implement
       upload/delete/health_check.
Who:   Called by UserService for avatar updates and account deletion.
"""

import re
from abc import ABC, abstractmethod

# Cloudinary delivery URLs carry "v<digits>" between the transformations
# and the public id
_VERSION_SEGMENT = re.compile(r"^v\d+$")


class ImageHostService(ABC):
    """
    Abstract interface for a remote image host.

    Contract:
        - upload_image() accepts a local file path and returns a public URL
        - delete_file() removes an asset by its public id
        - Implementations handle their own retry logic and error translation
        - Provider errors are wrapped in ImageHostError

    Implementations:
        - CloudinaryService (default)
    """

    @abstractmethod
    async def upload_image(self, file_path: str) -> str:
        """
        Upload a local image file and return its public URL.

        Raises:
            ImageHostError: The host failed after all retries.
            CircuitBreakerOpenError: Too many recent consecutive failures.
        """
        ...

    @abstractmethod
    async def delete_file(self, public_id: str) -> None:
        """
        Delete an asset by public id (e.g. "chatsphere/avatars/abc123").

        Raises:
            ImageHostError / CircuitBreakerOpenError, as for upload_image().
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability probe; True when the host answers."""
        ...

    @staticmethod
    def public_id_from_url(url: str) -> str:
        """
        Derive the asset public id from a delivery URL.

        The id is every path segment after the version segment, with the
        file extension dropped, so nested folders are kept:
            https://res.cloudinary.com/demo/image/upload/v17/chatsphere/avatars/abc.jpg
            → "chatsphere/avatars/abc"

        URLs that are not delivery URLs yield just the file name stem.
        """
        path = url.split("?", 1)[0].rstrip("/")
        if "/upload/" in path:
            segments = path.split("/upload/", 1)[1].split("/")
            for index, segment in enumerate(segments[:-1]):
                if _VERSION_SEGMENT.match(segment):
                    segments = segments[index + 1:]
                    break
        else:
            segments = [path.split("/")[-1]]

        segments[-1] = segments[-1].rsplit(".", 1)[0]
        return "/".join(segments)
