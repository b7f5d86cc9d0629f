import os
import uuid
from flask import current_app, url_for
from werkzeug.utils import secure_filename

IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png', 'webp', 'gif'}


def save_upload(file_storage, folder):
    """
    Store an uploaded file under UPLOAD_FOLDER/<folder>

    Returns (relative_path, url). The relative path is what delete_upload
    expects; the url is stable for as long as the file exists.
    """
    filename = secure_filename(file_storage.filename or '')
    if not filename:
        raise ValueError('Uploaded file has no usable name')

    stored_name = f"{uuid.uuid4().hex}_{filename}"
    directory = os.path.join(current_app.config['UPLOAD_FOLDER'], folder)
    os.makedirs(directory, exist_ok=True)
    file_storage.save(os.path.join(directory, stored_name))

    relative_path = f"{folder}/{stored_name}"
    current_app.logger.info(f"Stored upload {relative_path}")
    return relative_path, url_for('main.uploaded_file', filename=relative_path)


def delete_upload(relative_path):
    """Remove a stored file; missing files are ignored"""
    path = os.path.join(current_app.config['UPLOAD_FOLDER'], relative_path)
    try:
        os.remove(path)
    except FileNotFoundError:
        current_app.logger.warning(f"Upload already gone: {relative_path}")
