# Document Storage Utilities
"""
Thin adapter over a Supabase storage bucket.

Farmer documents live under one fixed folder per category and are stored
in the database as bare filenames; ``path_for`` joins the two back
together. Upload and signing failures raise ``StorageError``; deletions
are best-effort and only logged.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

from flask import current_app

from farmer_registry.errors import StorageError

logger = logging.getLogger(__name__)

PROFILE_PIC = 'profile-pic'
AADHAR_DOC = 'aadhar-doc'
BANK_DOC = 'bank-doc'
LAND_DOC = 'land-doc'
EXPORTS = 'exports'

CATEGORIES = (PROFILE_PIC, AADHAR_DOC, BANK_DOC, LAND_DOC)

CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'pdf': 'application/pdf',
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}

_stamp_lock = threading.Lock()
_last_stamp = 0

def unique_timestamp():
    """Millisecond timestamp, strictly increasing within this process."""
    global _last_stamp
    with _stamp_lock:
        stamp = max(int(time.time() * 1000), _last_stamp + 1)
        _last_stamp = stamp
        return stamp

def build_filename(survey_number, extension):
    return f'{survey_number}_{unique_timestamp()}.{extension.lower().lstrip(".")}'

def path_for(category, filename):
    if category not in CATEGORIES:
        raise ValueError(f'Unknown document category: {category}')
    return f'{category}/{filename}'

def _signed_url_from(response):
    # storage3 has returned both spellings across releases
    if isinstance(response, dict):
        return response.get('signedURL') or response.get('signedUrl')
    return None

class DocumentStore:
    def __init__(self, client, bucket, max_workers=8):
        self.client = client
        self.bucket = bucket
        self.max_workers = max_workers

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put_object(self, path, data, content_type=None):
        try:
            self._bucket().upload(
                path=path,
                file=data,
                file_options={'content-type': content_type or 'application/octet-stream'},
            )
        except Exception as e:
            logger.error('Upload of %s failed: %s', path, e)
            raise StorageError(detail=f'upload {path}: {e}') from e
        logger.info('Uploaded %s (%d bytes)', path, len(data))
        return path

    def upload(self, category, filename, data, content_type=None):
        self.put_object(path_for(category, filename), data, content_type)
        return filename

    def upload_many(self, uploads):
        """
        Upload ``(category, filename, data, content_type)`` tuples concurrently.

        Either every upload lands or none stays behind: when any of them
        fails, the ones that succeeded are deleted again before the first
        error is raised.
        """
        if not uploads:
            return []

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(uploads))) as pool:
            futures = [pool.submit(self.upload, *item) for item in uploads]
            outcomes = []
            for future in futures:
                try:
                    outcomes.append((future.result(), None))
                except StorageError as e:
                    outcomes.append((None, e))

        errors = [error for _, error in outcomes if error is not None]
        if errors:
            uploaded = [
                path_for(category, filename)
                for (category, filename, _, _), (result, error) in zip(uploads, outcomes)
                if error is None
            ]
            if uploaded:
                logger.warning('Releasing %d uploaded file(s) after failure', len(uploaded))
                self.delete(uploaded)
            raise errors[0]

        return [filename for filename, _ in outcomes]

    def delete(self, paths):
        """Best-effort removal; returns False instead of raising."""
        paths = [p for p in paths if p]
        if not paths:
            return True
        try:
            self._bucket().remove(paths)
        except Exception as e:
            logger.error('Storage deletion error for %s: %s', paths, e)
            return False
        logger.info('Deleted %d object(s) from storage', len(paths))
        return True

    def sign_url(self, path, ttl_seconds):
        try:
            response = self._bucket().create_signed_url(path, ttl_seconds)
        except Exception as e:
            raise StorageError(detail=f'sign {path}: {e}') from e
        url = _signed_url_from(response)
        if not url:
            raise StorageError(detail=f'sign {path}: no URL in response')
        return url

    def sign_many(self, paths, ttl_seconds):
        if not paths:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(paths))) as pool:
            return list(pool.map(lambda p: self.sign_url(p, ttl_seconds), paths))

def init_document_store(app):
    url = app.config.get('SUPABASE_URL')
    key = app.config.get('SUPABASE_SERVICE_KEY')
    if not url or not key:
        app.logger.warning('SUPABASE_URL/SUPABASE_SERVICE_KEY not set; document storage disabled')
        return None

    from supabase import create_client

    store = DocumentStore(
        create_client(url, key),
        app.config['STORAGE_BUCKET'],
        max_workers=app.config['STORAGE_MAX_WORKERS'],
    )
    app.extensions['document_store'] = store
    return store

def get_document_store():
    store = current_app.extensions.get('document_store')
    if store is None:
        raise StorageError('Document storage is not configured')
    return store
