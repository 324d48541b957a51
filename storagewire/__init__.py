__version__ = "0.3.0"

import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__package__)

from . import config  # noqa: E402, F401
from . import errors  # noqa: E402, F401
from . import metadata  # noqa: E402, F401
from . import operations  # noqa: E402, F401
from . import resumable  # noqa: E402, F401
from .errors import StorageError, StorageErrorCode  # noqa: E402, F401
from .location import Location  # noqa: E402, F401
from .metadata import get_mappings  # noqa: E402, F401
from .payload import Payload  # noqa: E402, F401
from .requestinfo import (  # noqa: E402, F401
    RequestDescriptor,
    TransportResponse,
)
from .resumable import ResumableUploadStatus  # noqa: E402, F401
from .service import StorageService  # noqa: E402, F401
from .transport import (  # noqa: E402, F401
    Transport,
    list_all,
    upload,
    upload_resumable,
)
