# app/cms.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .errors import ValidationError
from .extensions import db
from .forms import (
    PageForm,
    PageSectionForm,
    PageSectionUpdateForm,
    PageUpdateForm,
    SettingForm,
    form_error,
    json_formdata,
    submitted,
)
from .services import content

bp = Blueprint("cms", __name__)

PAGE_FIELDS = ("slug", "title", "meta_title", "meta_description", "is_published", "sort_order")
SECTION_FIELDS = (
    "page_id",
    "section_type",
    "title",
    "subtitle",
    "content",
    "background_color",
    "text_color",
    "sort_order",
    "is_published",
)


def _payload():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _published_only():
    return request.args.get("published_only") == "true"


# --- Pages ---
@bp.route("/pages")
def list_pages():
    pages = content.list_pages(published_only=_published_only())
    return jsonify({"success": True, "data": [p.to_dict() for p in pages], "count": len(pages)})


@bp.route("/pages/home")
def get_home():
    return jsonify({"success": True, "data": content.get_home_settings()})


@bp.route("/pages/home", methods=["PUT"])
@admin_required
def update_home():
    keys = content.save_home_settings(_payload())
    db.session.commit()
    current_app.logger.info("Admin %s updated homepage settings %s", current_user.email, keys)
    return jsonify({"success": True, "message": "Homepage settings updated successfully"})


@bp.route("/pages/<slug>")
def get_page(slug):
    page = content.get_page_by_slug(slug)
    return jsonify({"success": True, "data": page.to_dict()})


@bp.route("/pages", methods=["POST"])
@admin_required
def create_page():
    form = PageForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    page = content.create_page(**submitted(form, *PAGE_FIELDS))
    db.session.commit()
    current_app.logger.info("Admin %s created page %s", current_user.email, page.slug)
    return jsonify({"success": True, "data": page.to_dict(), "message": "Page created successfully"}), 201


@bp.route("/pages/<int:page_id>", methods=["PUT"])
@admin_required
def update_page(page_id):
    form = PageUpdateForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    page = content.update_page(page_id, submitted(form, *PAGE_FIELDS))
    db.session.commit()
    return jsonify({"success": True, "data": page.to_dict(), "message": "Page updated successfully"})


@bp.route("/pages/<int:page_id>", methods=["DELETE"])
@admin_required
def delete_page(page_id):
    content.delete_page(page_id)
    db.session.commit()
    current_app.logger.info("Admin %s deleted page %s", current_user.email, page_id)
    return jsonify({"success": True, "message": "Page deleted successfully"})


# --- Sections ---
@bp.route("/pages/<int:page_id>/sections")
def list_sections(page_id):
    sections = content.list_sections(page_id, published_only=_published_only())
    return jsonify(
        {"success": True, "data": [s.to_dict() for s in sections], "count": len(sections)}
    )


@bp.route("/sections/<int:section_id>")
def get_section(section_id):
    return jsonify({"success": True, "data": content.get_section(section_id).to_dict()})


@bp.route("/sections", methods=["POST"])
@admin_required
def create_section():
    payload = _payload()
    form = PageSectionForm(formdata=json_formdata(payload))
    if not form.validate():
        raise form_error(form)

    fields = submitted(form, *SECTION_FIELDS)
    fields["data"] = payload.get("data")
    section = content.create_section(**fields)
    db.session.commit()
    return (
        jsonify({"success": True, "data": section.to_dict(), "message": "Section created successfully"}),
        201,
    )


@bp.route("/sections/<int:section_id>", methods=["PUT"])
@admin_required
def update_section(section_id):
    payload = _payload()
    form = PageSectionUpdateForm(formdata=json_formdata(payload))
    if not form.validate():
        raise form_error(form)

    attributes = submitted(form, *SECTION_FIELDS)
    if "data" in payload:
        attributes["data"] = payload["data"]
    section = content.update_section(section_id, attributes)
    db.session.commit()
    return jsonify({"success": True, "data": section.to_dict(), "message": "Section updated successfully"})


@bp.route("/sections/<int:section_id>", methods=["DELETE"])
@admin_required
def delete_section(section_id):
    content.delete_section(section_id)
    db.session.commit()
    return jsonify({"success": True, "message": "Section deleted successfully"})


# --- Settings ---
@bp.route("/settings")
def list_settings():
    settings = content.list_settings()
    return jsonify({"success": True, "data": [s.to_dict() for s in settings]})


@bp.route("/settings/<key>")
def get_setting(key):
    return jsonify({"success": True, "data": content.get_setting(key).to_dict()})


@bp.route("/settings/<key>", methods=["PUT"])
@admin_required
def update_setting(key):
    form = SettingForm(formdata=json_formdata())
    if not form.validate():
        raise form_error(form)

    setting = content.update_setting(key, form.value.data)
    db.session.commit()
    current_app.logger.info("Admin %s updated setting %s", current_user.email, key)
    return jsonify({"success": True, "data": setting.to_dict(), "message": "Setting updated successfully"})
