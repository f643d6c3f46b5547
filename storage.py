"""
Object store on the local filesystem (UPLOAD_FOLDER).

Objects are addressed by storage paths such as ``dokumen/1718000000000_sop.pdf``.
"""
import logging
import os
import time

from flask import current_app
from werkzeug.utils import secure_filename

from errors import StorageError

logger = logging.getLogger(__name__)

PDF_EXTENSIONS = {'pdf'}
IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}


def allowed_file(filename, extensions):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in extensions


def upload_root():
    root = current_app.config['UPLOAD_FOLDER']
    os.makedirs(root, exist_ok=True)
    return root


def full_path(storage_path):
    root = os.path.abspath(upload_root())
    path = os.path.abspath(os.path.join(root, storage_path))
    if os.path.commonpath([root, path]) != root:
        raise StorageError(f'Invalid storage path: {storage_path}')
    return path


def make_storage_path(prefix, filename):
    name = secure_filename(filename) or 'file'
    return f"{prefix}/{int(time.time() * 1000)}_{name}"


def upload(file, prefix, extensions=None):
    """Save an uploaded FileStorage and return its storage path."""
    if not file or not file.filename:
        raise StorageError('Tidak ada file yang dipilih')
    if extensions and not allowed_file(file.filename, extensions):
        allowed = ', '.join(sorted(extensions))
        raise StorageError(f'Tipe file tidak didukung. Gunakan: {allowed}')

    storage_path = make_storage_path(prefix, file.filename)
    path = full_path(storage_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    try:
        file.save(path)
    except OSError as e:
        logger.exception(f"Failed to store {storage_path}")
        raise StorageError(f'Gagal menyimpan file: {e}') from e
    logger.info(f"Stored object {storage_path}")
    return storage_path


def delete(storage_path):
    """Delete an object. A missing object is logged and reported as False."""
    if not storage_path:
        return False
    path = full_path(storage_path)
    if not os.path.exists(path):
        logger.warning(f"Object {storage_path} not found, nothing to delete")
        return False
    try:
        os.remove(path)
    except OSError as e:
        logger.exception(f"Failed to delete {storage_path}")
        raise StorageError(f'Gagal menghapus file: {e}') from e
    logger.info(f"Deleted object {storage_path}")
    return True


def exists(storage_path):
    return bool(storage_path) and os.path.exists(full_path(storage_path))
