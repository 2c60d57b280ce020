# app/venues.py
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .auth import admin_required
from .errors import ValidationError
from .extensions import db
from .forms import VenueForm, VenueUpdateForm, form_error, json_formdata, json_list, submitted
from .services import venues as venue_service

bp = Blueprint("venues", __name__)

VENUE_FIELDS = (
    "name",
    "slug",
    "description",
    "capacity",
    "location",
    "image_url",
    "is_published",
    "sort_order",
)


def _venue_fields(form, payload):
    fields = submitted(form, *VENUE_FIELDS)
    for name in ("amenities", "gallery_urls"):
        value = json_list(payload, name)
        if value is not None:
            fields[name] = value
    return fields


def _payload():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@bp.route("")
def list_venues():
    published_only = request.args.get("published_only") == "true"
    venues = venue_service.list_venues(published_only=published_only)
    return jsonify({"success": True, "data": [v.to_dict() for v in venues], "count": len(venues)})


@bp.route("/slug/<slug>")
def get_venue_by_slug(slug):
    venue = venue_service.get_published_venue_by_slug(slug)
    return jsonify({"success": True, "data": venue.to_dict()})


@bp.route("/<int:venue_id>")
def get_venue(venue_id):
    return jsonify({"success": True, "data": venue_service.get_venue(venue_id).to_dict()})


@bp.route("", methods=["POST"])
@admin_required
def create_venue():
    payload = _payload()
    form = VenueForm(formdata=json_formdata(payload))
    if not form.validate():
        raise form_error(form)

    fields = _venue_fields(form, payload)
    fields.setdefault("is_published", True)
    venue = venue_service.create_venue(**fields)
    db.session.commit()
    current_app.logger.info("Admin %s created venue %s", current_user.email, venue.slug)
    return jsonify({"success": True, "data": venue.to_dict(), "message": "Venue created successfully"}), 201


@bp.route("/<int:venue_id>", methods=["PUT"])
@admin_required
def update_venue(venue_id):
    payload = _payload()
    form = VenueUpdateForm(formdata=json_formdata(payload))
    if not form.validate():
        raise form_error(form)

    venue = venue_service.update_venue(venue_id, _venue_fields(form, payload))
    db.session.commit()
    return jsonify({"success": True, "data": venue.to_dict(), "message": "Venue updated successfully"})


@bp.route("/<int:venue_id>", methods=["DELETE"])
@admin_required
def delete_venue(venue_id):
    venue_service.delete_venue(venue_id)
    db.session.commit()
    current_app.logger.info("Admin %s deleted venue %s", current_user.email, venue_id)
    return jsonify({"success": True, "message": "Venue deleted successfully"})
