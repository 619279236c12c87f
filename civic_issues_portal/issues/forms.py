from pathlib import Path

from django import forms
from django.core.exceptions import ValidationError

from accounts.models import Specialization

from .geo import parse_location
from .models import Issue, IssueComment

ALLOWED_PHOTO_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
MAX_PHOTO_SIZE_BYTES = 5 * 1024 * 1024


def validate_photo(file_obj):
    extension = Path(file_obj.name).suffix.lower()
    if extension not in ALLOWED_PHOTO_EXTENSIONS:
        raise ValidationError("Only JPG, JPEG, PNG, and WEBP images are allowed.")
    if file_obj.size > MAX_PHOTO_SIZE_BYTES:
        raise ValidationError("Each photo must be 5MB or smaller.")


class LocationField(forms.Field):
    """Form field whose cleaned value is a ``GeoPoint``."""

    def to_python(self, value):
        if value in self.empty_values:
            return None
        return parse_location(value)


class IssueForm(forms.ModelForm):
    location = LocationField()

    class Meta:
        model = Issue
        fields = ["title", "description", "specialization", "photo"]

    def clean_photo(self):
        photo = self.cleaned_data.get("photo")
        if photo:
            validate_photo(photo)
        return photo


class IssueUpdateForm(forms.Form):
    """
    Partial update. Only keys present in the submitted data are applied,
    and a present key may not be blank.
    """

    CONTENT_FIELDS = ("title", "description", "specialization", "location", "photo")

    title = forms.CharField(max_length=255, required=False)
    description = forms.CharField(required=False)
    specialization = forms.ChoiceField(choices=Specialization.choices, required=False)
    location = LocationField(required=False)
    photo = forms.FileField(required=False)
    status = forms.ChoiceField(choices=Issue.Status.choices, required=False)

    def submitted(self, name) -> bool:
        return name in self.data or name in self.files

    def clean(self):
        cleaned_data = super().clean()
        for name in ("title", "description", "specialization", "location", "status"):
            if self.submitted(name) and name not in self.errors and cleaned_data.get(name) in (None, ""):
                self.add_error(name, "This field cannot be blank.")
        photo = cleaned_data.get("photo")
        if photo:
            try:
                validate_photo(photo)
            except ValidationError as error:
                self.add_error("photo", error)
        return cleaned_data

    def content_changes(self) -> dict:
        return {
            name: self.cleaned_data[name]
            for name in self.CONTENT_FIELDS
            if self.submitted(name) and self.cleaned_data.get(name) not in (None, "")
        }

    def requested_status(self):
        if self.submitted("status"):
            return self.cleaned_data["status"]
        return None


class CommentForm(forms.ModelForm):
    class Meta:
        model = IssueComment
        fields = ["content"]

    def clean_content(self):
        content = self.cleaned_data.get("content", "").strip()
        if not content:
            raise ValidationError("Comment content is required.")
        return content
