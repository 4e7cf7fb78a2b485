from __future__ import annotations

import io

from flask import Blueprint, request, send_file

from sheetgen import icongrid
from sheetgen.uploads import collect_uploads


bp = Blueprint("icongrid", __name__)


@bp.route("/icongrid", methods=["POST"])
def generate_icongrid():
    icons = collect_uploads(request.files.getlist("icon_files"))
    legacy_mode = request.form.get("legacy_mode", "0") == "1"

    base = None
    if legacy_mode:
        bases = collect_uploads(request.files.getlist("icongrid_base"))
        base = bases[0] if bases else None

    filename, data = icongrid.generate_icongrid(icons, legacy_mode=legacy_mode, base=base)
    return send_file(
        io.BytesIO(data),
        mimetype="image/png",
        as_attachment=True,
        download_name=filename,
    )
