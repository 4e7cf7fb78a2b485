from __future__ import annotations

import io

from flask import Blueprint, request, send_file

from sheetgen import pipeline
from sheetgen.options import parse_sheet_options
from sheetgen.uploads import collect_uploads


bp = Blueprint("spritesheet", __name__)


@bp.route("/spritesheet", methods=["POST"])
def generate_spritesheet():
    options = parse_sheet_options(request.form)

    single_frames = collect_uploads(request.files.getlist("single_frames"))
    sheet_pngs = collect_uploads(request.files.getlist("spritesheet_pngs"))
    sheet_xmls = collect_uploads(request.files.getlist("spritesheet_xmls"))

    filename, data = pipeline.generate_spritesheet(options, single_frames, sheet_pngs, sheet_xmls)
    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=filename,
    )
