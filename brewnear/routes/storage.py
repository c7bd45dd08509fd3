"""
Serves uploaded photos back from their storage buckets.
"""

from __future__ import annotations

from flask import Blueprint, send_from_directory

from ..errors import NotFoundError
from .common import storage


storage_bp = Blueprint("storage", __name__)


@storage_bp.route("/<string:bucket>/<path:path>", methods=["GET"])
def serve_file(bucket: str, path: str):
    store = storage()
    if not store.exists(bucket, path):
        raise NotFoundError("File not found")
    return send_from_directory(store.bucket_dir(bucket), path, max_age=3600)
