"""
Image I/O Utilities
===================

This module loads radiograph photos from disk and prepares images for the
classification service. Every outbound image goes through the same
resize-and-encode step so that the dewarped crop and the uncropped fallback
are sent with identical settings.

Functions
---------
load_image_for_display
    Load PNG/JPEG/DICOM as an RGB PIL image
load_frame
    Load an image file as an RGB ImageBuffer (NumPy array)
compress_for_upload
    Cap the longest side and encode as JPEG
to_data_uri
    Wrap encoded bytes as a base64 ``data:`` URI
decode_data_uri
    Decode a base64 image ``data:`` URI into an RGB ImageBuffer

Notes
-----
DICOM handling normalizes ``pixel_array`` to the 0-255 range before RGB
conversion. Standard formats are loaded with ``PIL.Image.open``.

See Also
--------
opg_ui.core.classifier : Sends data URIs to the classification service
"""

import base64
import binascii
import io
from pathlib import Path

import numpy as np
from PIL import Image


def load_image_for_display(path: str | Path):
    """
    Load an image and convert it to RGB.

    Parameters
    ----------
    path : str or Path
        PNG, JPEG or DICOM (``.dcm``) file

    Returns
    -------
    PIL.Image
        8-bit RGB image
    """
    p = str(path)
    if p.lower().endswith(".dcm"):
        import pydicom

        ds = pydicom.dcmread(p)
        arr = ds.pixel_array.astype(np.float32)
        arr -= arr.min()
        if arr.max() > 0:
            arr /= arr.max()
        arr = (arr * 255).astype(np.uint8)
        return Image.fromarray(arr).convert("RGB")
    return Image.open(p).convert("RGB")


def load_frame(path: str | Path) -> np.ndarray:
    """Load an image file as an (H, W, 3) uint8 RGB array."""
    return np.array(load_image_for_display(path))


def compress_for_upload(frame, max_dim: int = 1200, quality: int = 80) -> bytes:
    """
    Resize and JPEG-encode an image for upload.

    Parameters
    ----------
    frame : np.ndarray or PIL.Image
        RGB(A) or grayscale image
    max_dim : int, default=1200
        Maximum length of the longest side; smaller images are not enlarged
    quality : int, default=80
        JPEG quality (1-95)

    Returns
    -------
    bytes
        JPEG-encoded image

    Examples
    --------
    >>> import numpy as np
    >>> from PIL import Image
    >>> import io
    >>> data = compress_for_upload(np.zeros((720, 1920, 3), np.uint8))
    >>> Image.open(io.BytesIO(data)).size
    (1200, 450)
    """
    img = frame if isinstance(frame, Image.Image) else Image.fromarray(np.asarray(frame))
    if img.mode != "RGB":
        img = img.convert("RGB")
    w, h = img.size
    if w >= h and w > max_dim:
        img = img.resize((max_dim, max(1, round(h * max_dim / w))), Image.BILINEAR)
    elif h > w and h > max_dim:
        img = img.resize((max(1, round(w * max_dim / h)), max_dim), Image.BILINEAR)
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def to_data_uri(data: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_uri(uri: str) -> np.ndarray:
    """
    Decode a base64 image data URI.

    Parameters
    ----------
    uri : str
        ``data:<mime>;base64,<payload>``

    Returns
    -------
    np.ndarray
        (H, W, 3) uint8 RGB array

    Raises
    ------
    ValueError
        If the URI is not a base64 image data URI or does not decode to an
        image
    """
    if not isinstance(uri, str) or not uri.startswith("data:image/") or "," not in uri:
        raise ValueError("Expected a data:image/...;base64,<data> URI")
    header, payload = uri.split(",", 1)
    if not header.endswith(";base64"):
        raise ValueError("Only base64-encoded data URIs are supported")
    try:
        raw = base64.b64decode(payload, validate=True)
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (binascii.Error, OSError) as e:
        raise ValueError(f"Could not decode image data URI: {e}") from e
    return np.array(img.convert("RGB"))
