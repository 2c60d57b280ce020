from flask import request
from flask_wtf import FlaskForm
from werkzeug.datastructures import ImmutableMultiDict
from wtforms import (
    StringField,
    TextAreaField,
    PasswordField,
    IntegerField,
    BooleanField,
    DecimalField,
)
from wtforms.fields import DateField, DateTimeField
from wtforms.validators import (
    AnyOf,
    DataRequired,
    Email,
    NumberRange,
    Optional,
    Length,
    Regexp,
)
from .errors import ValidationError
from .models import EnrollmentStatus, InquiryPriority, InquiryStatus, SessionStatus

PHONE_REGEXP = r"^\+355\d{9}$"
PHONE_MESSAGE = "Phone number must be in format +355xxxxxxxxx (Albanian format)"
ID_CARD_MESSAGE = "ID card number must be exactly 10 characters"
CURRENCY_REGEXP = r"^[A-Za-z]{3}$"


def _form_value(value):
    # WTForms expects submitted strings
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def json_formdata(payload=None):
    """Wrap a JSON body so WTForms can read it like submitted form data."""
    if payload is None:
        payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    # lists and objects are read from the payload by the caller
    return ImmutableMultiDict(
        {
            k: _form_value(v)
            for k, v in payload.items()
            if v is not None and not isinstance(v, (dict, list))
        }
    )


def json_list(payload: dict, key: str):
    """A list-of-strings member of a JSON body, or ``None`` when absent."""
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{key} must be a list of strings")
    return value


def submitted(form, *names) -> dict:
    """``{name: data}`` for the fields that were present in the request."""
    return {name: getattr(form, name).data for name in names if getattr(form, name).raw_data}


def form_error(form) -> ValidationError:
    field_name, messages = next(iter(form.errors.items()))
    message = messages[0] if messages else "Invalid value"
    return ValidationError(message, details=form.errors)


class JsonForm(FlaskForm):
    class Meta:
        csrf = False


class LoginForm(JsonForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])


# --- Intake ---
class EnrollmentIntakeForm(JsonForm):
    courseSlug = StringField(
        "Course", validators=[DataRequired("Missing required fields"), Length(max=120)]
    )
    sessionId = IntegerField(
        "Session", validators=[DataRequired("Missing required fields"), NumberRange(min=1)]
    )
    studentName = StringField(
        "Name", validators=[DataRequired("Missing required fields"), Length(max=200)]
    )
    studentEmail = StringField(
        "Email",
        validators=[DataRequired("Missing required fields"), Email(), Length(max=200)],
    )
    studentPhone = StringField(
        "Phone", validators=[Optional(), Regexp(PHONE_REGEXP, message=PHONE_MESSAGE)]
    )
    studentIdCard = StringField(
        "ID card", validators=[Optional(), Length(min=10, max=10, message=ID_CARD_MESSAGE)]
    )
    studentAddress = StringField("Address", validators=[Optional(), Length(max=300)])
    amount = DecimalField("Amount", places=2, validators=[Optional(), NumberRange(min=0)])
    currency = StringField(
        "Currency",
        validators=[Optional(), Regexp(CURRENCY_REGEXP, message="Currency must be a 3-letter code")],
    )
    gdprConsent = BooleanField("GDPR consent")

    def intake_data(self) -> dict:
        return {
            "course_slug": self.courseSlug.data.strip(),
            "full_name": self.studentName.data.strip(),
            "phone": self.studentPhone.data or None,
            "id_card": self.studentIdCard.data or None,
            "address": self.studentAddress.data or None,
            "gdpr_consent": bool(self.gdprConsent.data),
            "amount": self.amount.data,
            "currency": self.currency.data.upper() if self.currency.data else None,
        }


class EnrollmentUpdateForm(JsonForm):
    full_name = StringField(
        "Name", validators=[DataRequired("Full name and email are required"), Length(max=200)]
    )
    email = StringField(
        "Email",
        validators=[DataRequired("Full name and email are required"), Email(), Length(max=200)],
    )
    phone = StringField(
        "Phone", validators=[Optional(), Regexp(PHONE_REGEXP, message=PHONE_MESSAGE)]
    )
    id_card = StringField(
        "ID card", validators=[Optional(), Length(min=10, max=10, message=ID_CARD_MESSAGE)]
    )
    address = StringField("Address", validators=[Optional(), Length(max=300)])


# --- Status changes ---
STATUS_ACTIONS = {
    "paid": EnrollmentStatus.payment_confirmed,
    "restore": EnrollmentStatus.enrolled,
    **{status.value: status for status in EnrollmentStatus},
}


class StatusChangeForm(JsonForm):
    status = StringField(
        "Status",
        validators=[
            DataRequired("Status is required"),
            AnyOf([s.value for s in EnrollmentStatus], message="Invalid status"),
        ],
    )
    adminEmail = StringField("Admin", validators=[Optional(), Length(max=200)])
    updatedBy = StringField("Updated by", validators=[Optional(), Length(max=200)])

    def target_status(self) -> EnrollmentStatus:
        return EnrollmentStatus(self.status.data)

    def actor(self) -> str | None:
        return self.adminEmail.data or self.updatedBy.data or None


class StatusActionForm(JsonForm):
    action = StringField(
        "Action",
        validators=[
            DataRequired("Action parameter is required"),
            AnyOf(list(STATUS_ACTIONS), message="Invalid action"),
        ],
    )

    def target_status(self) -> EnrollmentStatus:
        return STATUS_ACTIONS[self.action.data]


# --- Sessions ---
class SessionForm(JsonForm):
    course_id = IntegerField("Course", validators=[Optional()])
    title = StringField("Title", validators=[DataRequired("Title is required"), Length(max=200)])
    description = StringField("Description", validators=[Optional()])
    start_date = DateField("Start date", format="%Y-%m-%d", validators=[Optional()])
    end_date = DateField("End date", format="%Y-%m-%d", validators=[Optional()])
    capacity = IntegerField("Capacity", default=0, validators=[Optional(), NumberRange(min=0)])
    status = StringField(
        "Status",
        validators=[Optional(), AnyOf([s.value for s in SessionStatus], message="Invalid status")],
    )
    is_published = BooleanField("Published")


class SessionUpdateForm(SessionForm):
    title = StringField("Title", validators=[Optional(), Length(max=200)])
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])


# --- Events ---
DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
]
SLUG_REGEXP = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
SLUG_MESSAGE = "Slug may only contain lowercase letters, digits and dashes"


class EventForm(JsonForm):
    title = StringField("Title", validators=[DataRequired("Title is required"), Length(max=200)])
    slug = StringField(
        "Slug",
        validators=[
            DataRequired("Slug is required"),
            Length(max=200),
            Regexp(SLUG_REGEXP, message=SLUG_MESSAGE),
        ],
    )
    description = TextAreaField("Description", validators=[Optional()])
    event_date = DateTimeField(
        "Event date", format=DATETIME_FORMATS, validators=[DataRequired("Event date is required")]
    )
    event_end_date = DateTimeField("End date", format=DATETIME_FORMATS, validators=[Optional()])
    location = StringField("Location", validators=[Optional(), Length(max=200)])
    capacity = IntegerField("Capacity", default=100, validators=[Optional(), NumberRange(min=0)])
    price = DecimalField("Price", places=2, validators=[Optional(), NumberRange(min=0)])
    currency = StringField(
        "Currency",
        validators=[Optional(), Regexp(CURRENCY_REGEXP, message="Currency must be a 3-letter code")],
    )
    event_type = StringField("Type", validators=[Optional(), Length(max=50)])
    is_published = BooleanField("Published")
    sort_order = IntegerField("Sort order", validators=[Optional()])


class EventUpdateForm(EventForm):
    title = StringField("Title", validators=[Optional(), Length(max=200)])
    slug = StringField(
        "Slug", validators=[Optional(), Length(max=200), Regexp(SLUG_REGEXP, message=SLUG_MESSAGE)]
    )
    event_date = DateTimeField("Event date", format=DATETIME_FORMATS, validators=[Optional()])
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])


class EventRegistrationForm(JsonForm):
    firstName = StringField(
        "First name", validators=[DataRequired("First name is required"), Length(max=100)]
    )
    lastName = StringField(
        "Last name", validators=[DataRequired("Last name is required"), Length(max=100)]
    )
    email = StringField(
        "Email",
        validators=[
            DataRequired("Invalid email address"),
            Email("Invalid email address"),
            Length(max=200),
        ],
    )
    phone = StringField(
        "Phone", validators=[DataRequired("Phone number is required"), Length(max=20)]
    )


class EventRegistrationByTitleForm(JsonForm):
    firstName = StringField(
        "First name", validators=[DataRequired("First name is required"), Length(max=100)]
    )
    lastName = StringField(
        "Last name", validators=[DataRequired("Last name is required"), Length(max=100)]
    )
    email = StringField(
        "Email",
        validators=[
            DataRequired("Invalid email address"),
            Email("Invalid email address"),
            Length(max=200),
        ],
    )
    school = StringField(
        "School", validators=[DataRequired("School name is required"), Length(max=200)]
    )
    eventTitle = StringField(
        "Event", validators=[DataRequired("Event title is required"), Length(max=200)]
    )


# --- Venues ---
class VenueForm(JsonForm):
    name = StringField(
        "Name", validators=[DataRequired("Name and slug are required"), Length(max=200)]
    )
    slug = StringField(
        "Slug",
        validators=[
            DataRequired("Name and slug are required"),
            Length(max=200),
            Regexp(SLUG_REGEXP, message=SLUG_MESSAGE),
        ],
    )
    description = TextAreaField("Description", validators=[Optional()])
    capacity = IntegerField("Capacity", validators=[Optional(), NumberRange(min=0)])
    location = StringField("Location", validators=[Optional(), Length(max=200)])
    image_url = StringField("Image", validators=[Optional(), Length(max=500)])
    is_published = BooleanField("Published")
    sort_order = IntegerField("Sort order", validators=[Optional()])


class VenueUpdateForm(VenueForm):
    name = StringField("Name", validators=[Optional(), Length(max=200)])
    slug = StringField(
        "Slug", validators=[Optional(), Length(max=200), Regexp(SLUG_REGEXP, message=SLUG_MESSAGE)]
    )


# --- CMS ---
class PageForm(JsonForm):
    slug = StringField(
        "Slug",
        validators=[
            DataRequired("Slug and title are required"),
            Length(max=120),
            Regexp(SLUG_REGEXP, message=SLUG_MESSAGE),
        ],
    )
    title = StringField(
        "Title", validators=[DataRequired("Slug and title are required"), Length(max=200)]
    )
    meta_title = StringField("Meta title", validators=[Optional(), Length(max=200)])
    meta_description = StringField("Meta description", validators=[Optional(), Length(max=500)])
    is_published = BooleanField("Published")
    sort_order = IntegerField("Sort order", validators=[Optional()])


class PageUpdateForm(PageForm):
    slug = StringField(
        "Slug", validators=[Optional(), Length(max=120), Regexp(SLUG_REGEXP, message=SLUG_MESSAGE)]
    )
    title = StringField("Title", validators=[Optional(), Length(max=200)])


class PageSectionForm(JsonForm):
    page_id = IntegerField(
        "Page", validators=[DataRequired("Page ID and section type are required")]
    )
    section_type = StringField(
        "Type", validators=[DataRequired("Page ID and section type are required"), Length(max=50)]
    )
    title = StringField("Title", validators=[Optional(), Length(max=200)])
    subtitle = StringField("Subtitle", validators=[Optional(), Length(max=300)])
    content = TextAreaField("Content", validators=[Optional()])
    background_color = StringField("Background", validators=[Optional(), Length(max=20)])
    text_color = StringField("Text color", validators=[Optional(), Length(max=20)])
    sort_order = IntegerField("Sort order", validators=[Optional()])
    is_published = BooleanField("Published")


class PageSectionUpdateForm(PageSectionForm):
    page_id = IntegerField("Page", validators=[Optional()])
    section_type = StringField("Type", validators=[Optional(), Length(max=50)])


class SettingForm(JsonForm):
    value = TextAreaField("Value", validators=[Optional()])


# --- Contact ---
CONTACT_REQUIRED = "Missing required fields. Please fill in all required fields."


class ContactForm(JsonForm):
    name = StringField("Name", validators=[DataRequired(CONTACT_REQUIRED), Length(max=200)])
    email = StringField(
        "Email",
        validators=[
            DataRequired(CONTACT_REQUIRED),
            Email("Please provide a valid email address."),
            Length(max=200),
        ],
    )
    phone = StringField("Phone", validators=[Optional(), Length(max=30)])
    subject = StringField("Subject", validators=[DataRequired(CONTACT_REQUIRED), Length(max=200)])
    message = TextAreaField("Message", validators=[DataRequired(CONTACT_REQUIRED)])


class InquiryUpdateForm(JsonForm):
    status = StringField(
        "Status",
        validators=[Optional(), AnyOf([s.value for s in InquiryStatus], message="Invalid status")],
    )
    priority = StringField(
        "Priority",
        validators=[
            Optional(),
            AnyOf([p.value for p in InquiryPriority], message="Invalid priority"),
        ],
    )
    admin_notes = TextAreaField("Notes", validators=[Optional()])
