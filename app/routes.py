"""
Flask routes for the pressdesk JSON API.

This module contains all route handlers for the application:
- Public gallery of published reports
- Workspace operations (entries, settings, draft, generation)
- Publishing, loading and deleting reports
- Settings and report-data import/export
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from pressdesk.session import SessionError

logger = logging.getLogger(__name__)

# Create blueprint for main routes
bp = Blueprint('main', __name__)


def _session():
    return current_app.extensions['pressdesk_session']


def _json_body():
    """Request body as a dict; anything else is a 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise SessionError("Invalid JSON")
    return data


def _entry_response(entry):
    """Per-entry AI results are discarded when the entry was removed meanwhile."""
    if entry is None:
        return jsonify({"success": False, "message": "Entry was removed"}), 409
    return jsonify({"success": True, "entry": entry.to_dict()})


@bp.route('/health')
def health():
    """Health check endpoint; no store or AI access."""
    return jsonify({'status': 'ok'})


# ---------------------------------------------------------------------------
# Public gallery
# ---------------------------------------------------------------------------

@bp.route('/api/reports')
def list_reports():
    """
    Published reports, newest first, without embedded images.

    Returns:
        {"reports": [{"id": ..., "publishDate": ..., "title": {...}, ...}]}
    """
    reports = _session().list_reports()
    return jsonify({'reports': [r.summary() for r in reports]})


@bp.route('/api/reports/<report_id>')
def get_report(report_id):
    return jsonify(_session().get_report(report_id).to_dict())


@bp.route('/api/reports/<report_id>', methods=['DELETE'])
def delete_report(report_id):
    _session().delete_report(report_id)
    return jsonify({"success": True})


@bp.route('/api/reports/<report_id>/load', methods=['POST'])
def load_report(report_id):
    """
    Load a published report into the workspace.

    Body: {"confirm": true}. Without it the call answers 409 and nothing changes.
    """
    data = request.get_json(silent=True) or {}
    confirm = bool(data.get('confirm')) if isinstance(data, dict) else False
    _session().load_report(report_id, confirm=confirm)
    return jsonify(_session().snapshot())


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------

@bp.route('/api/workspace')
def workspace():
    return jsonify(_session().snapshot())


@bp.route('/api/entries', methods=['POST'])
def add_entry():
    """Body: {"note": "...", "images": ["data:image/jpeg;base64,..."]}"""
    data = _json_body()
    images = data.get('images') or []
    if not isinstance(images, list):
        raise SessionError("images must be a list")
    entry = _session().add_entry(note=data.get('note') or '', images=images)
    return jsonify({"success": True, "entry": entry.to_dict()}), 201


@bp.route('/api/entries/<entry_id>', methods=['PATCH'])
def update_entry(entry_id):
    entry = _session().update_entry(entry_id, _json_body())
    return jsonify({"success": True, "entry": entry.to_dict()})


@bp.route('/api/entries/<entry_id>', methods=['DELETE'])
def remove_entry(entry_id):
    _session().remove_entry(entry_id)
    return jsonify({"success": True})


@bp.route('/api/entries/order', methods=['PUT'])
def reorder_entries():
    """Body: {"ids": [...]} listing every entry id once."""
    ids = _json_body().get('ids')
    if not isinstance(ids, list):
        raise SessionError("ids must be a list")
    entries = _session().reorder_entries([str(i) for i in ids])
    return jsonify({"success": True, "entries": [e.to_dict() for e in entries]})


@bp.route('/api/entries/<entry_id>/images', methods=['POST'])
def add_images(entry_id):
    images = _json_body().get('images')
    if not isinstance(images, list):
        raise SessionError("images must be a list")
    entry = _session().add_images(entry_id, images)
    return jsonify({"success": True, "entry": entry.to_dict()})


@bp.route('/api/entries/<entry_id>/images/<int:index>', methods=['DELETE'])
def remove_image(entry_id, index):
    entry = _session().remove_image(entry_id, index)
    return jsonify({"success": True, "entry": entry.to_dict()})


@bp.route('/api/entries/<entry_id>/hero/<int:index>', methods=['POST'])
def toggle_hero(entry_id, index):
    entry = _session().toggle_hero(entry_id, index)
    return jsonify({"success": True, "entry": entry.to_dict()})


ENTRY_OPERATIONS = {
    'caption': 'caption_entry',
    'copy': 'copy_entry',
    'title': 'title_entry',
    'image': 'image_entry',
}


@bp.route('/api/entries/<entry_id>/<operation>', methods=['POST'])
def entry_operation(entry_id, operation):
    """Run one AI helper (caption, copy, title, image) on an entry."""
    method = ENTRY_OPERATIONS.get(operation)
    if method is None:
        return jsonify({"success": False, "message": f"Unknown operation: {operation}"}), 404
    return _entry_response(getattr(_session(), method)(entry_id))


# ---------------------------------------------------------------------------
# Settings and draft
# ---------------------------------------------------------------------------

@bp.route('/api/settings')
def get_settings():
    return jsonify(_session().settings.to_dict())


@bp.route('/api/settings', methods=['PATCH'])
def update_settings():
    return jsonify(_session().update_settings(_json_body()).to_dict())


@bp.route('/api/settings/analyze-url', methods=['POST'])
def analyze_url():
    """Body: {"url": "..."}; the analysis is merged into the settings."""
    session = _session()
    analysis = session.analyze_url(_json_body().get('url') or '')
    return jsonify({
        "analysis": analysis.model_dump(by_alias=True),
        "settings": session.settings.to_dict(),
    })


@bp.route('/api/settings/refine-contexts', methods=['POST'])
def refine_contexts():
    return jsonify(_session().refine_contexts().to_dict())


@bp.route('/api/settings/refine-themes', methods=['POST'])
def refine_themes():
    return jsonify(_session().refine_themes().to_dict())


@bp.route('/api/replace', methods=['POST'])
def replace_all():
    """Body: {"find": "<regex>", "replace": "..."}"""
    data = _json_body()
    try:
        _session().replace_all(data.get('find') or '', data.get('replace') or '')
    except ValueError as e:
        raise SessionError(str(e)) from e
    return jsonify(_session().snapshot())


@bp.route('/api/language', methods=['PUT'])
def set_language():
    language = _json_body().get('language')
    if language not in ('en', 'zh', 'both'):
        raise SessionError("language must be one of en, zh, both")
    _session().language = language
    return jsonify({"language": language})


@bp.route('/api/draft', methods=['PATCH'])
def update_draft():
    return jsonify(_session().update_draft(_json_body()).to_dict())


@bp.route('/api/draft/themes', methods=['POST'])
def import_themes_to_draft():
    return jsonify(_session().import_themes_to_draft().to_dict())


@bp.route('/api/draft/<section>', methods=['POST'])
def draft_section(section):
    return jsonify(_session().draft_section(section).to_dict())


# ---------------------------------------------------------------------------
# Generation and publishing
# ---------------------------------------------------------------------------

@bp.route('/api/generate', methods=['POST'])
def generate():
    """
    Generate the bilingual report.

    Body:
        {"language": "en" | "zh" | "both", "mode": "creative" | "zh_to_en" | "en_to_zh"}
    """
    data = request.get_json(silent=True) or {}
    language = data.get('language') or _session().language
    mode = data.get('mode') or 'creative'
    if language not in ('en', 'zh', 'both'):
        raise SessionError("language must be one of en, zh, both")
    if mode not in ('creative', 'zh_to_en', 'en_to_zh'):
        raise SessionError("mode must be one of creative, zh_to_en, en_to_zh")
    report = _session().generate(language, mode)
    return jsonify(report.to_dict())


@bp.route('/api/report', methods=['PUT'])
def update_report():
    """Replace the current report with an edited copy (the draft follows)."""
    return jsonify(_session().update_report(_json_body()).to_dict())


@bp.route('/api/publish', methods=['POST'])
def publish():
    published = _session().publish()
    logger.info(f"Published report {published.id}")
    return jsonify(published.to_dict()), 201


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

@bp.route('/api/export/settings')
def export_settings():
    return jsonify(_session().export_settings())


@bp.route('/api/import/settings', methods=['POST'])
def import_settings():
    return jsonify(_session().import_settings(_json_body()).to_dict())


@bp.route('/api/export/report-data')
def export_report_data():
    return jsonify(_session().export_report_data())


@bp.route('/api/import/report-data', methods=['POST'])
def import_report_data():
    _session().import_report_data(_json_body())
    return jsonify(_session().snapshot())
