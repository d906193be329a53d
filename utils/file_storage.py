"""
Disk storage for uploaded documents.

Files live flat in ``UPLOAD_FOLDER`` under a random hex name that keeps the
original extension; the database row remembers the name the user uploaded.
"""
import logging
import os
import uuid

from flask import current_app
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


def get_file_path(filename):
    """Absolute path of a stored file inside ``UPLOAD_FOLDER``."""
    return os.path.join(current_app.config['UPLOAD_FOLDER'], filename)


def stored_name_for(original_name):
    """Random storage name carrying over the (sanitized) extension of ``original_name``."""
    safe_name = secure_filename(original_name or '')
    _, extension = os.path.splitext(safe_name)
    return f"{uuid.uuid4().hex}{extension.lower()}"


def save_file(file_storage):
    """
    Write an uploaded ``FileStorage`` to the upload folder.

    Returns ``(stored_filename, size_in_bytes)``, or ``(None, 0)`` when the
    form carried no file.
    """
    if not file_storage or not file_storage.filename:
        return None, 0

    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)

    filename = stored_name_for(file_storage.filename)
    path = get_file_path(filename)
    file_storage.save(path)
    size = os.path.getsize(path)

    logger.debug(f"Stored upload {file_storage.filename!r} as {path} ({size} bytes)")
    return filename, size


def delete_file(filename):
    """Remove a stored file; returns False if it was already gone."""
    if not filename:
        return False

    path = get_file_path(filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning(f"Stored file already missing: {path}")
        return False

    logger.debug(f"Deleted stored file: {path}")
    return True
