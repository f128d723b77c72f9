"""Failures of the avatar upload path.

Each error carries the HTTP status the route layer answers with. Storage
cleanup failures are not represented here: they are logged and dropped.
"""


class AvatarError(Exception):
    status_code = 400
    detail = "Avatar upload failed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class UnsupportedMediaType(AvatarError):
    status_code = 415
    detail = "Invalid file type. Only JPEG and PNG are allowed"


class InvalidImageData(AvatarError):
    status_code = 400
    detail = "File could not be decoded as an image"


class FileTooLarge(AvatarError):
    status_code = 413
    detail = "File size exceeds the avatar size limit"


class StorageUnavailable(AvatarError):
    status_code = 502
    detail = "Failed to upload avatar"
