from __future__ import annotations

from flask import Flask, request

from ..common.http import json_endpoint
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/import", methods=["POST"], endpoint="attendance_import")
    @json_endpoint
    def import_spreadsheet():
        upload = request.files.get("file")
        if upload is None or not upload.filename:
            raise ValidationError("A spreadsheet file is required in the 'file' field")
        batch = container.import_pipeline.import_spreadsheet(upload.read(), filename=upload.filename)
        return batch.to_dict(), 200
