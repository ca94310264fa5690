"""imagemill: ImageMagick-backed image transformation jobs.

Accepts an uploaded image, applies one transformation (resize, convert,
filter, crop, text overlay, rotate) through the external ImageMagick tool,
and keeps the result retrievable until the retention sweeper expires it.
"""

__version__ = "0.1.0"
__description__ = "ImageMagick-backed image transformation job layer"

from imagemill.core.transform_service import TransformService
from imagemill.core.artifact_store import ArtifactStore
from imagemill.core.retention import RetentionSweeper

__all__ = ["TransformService", "ArtifactStore", "RetentionSweeper", "__version__"]
