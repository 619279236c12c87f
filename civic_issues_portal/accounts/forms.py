from django import forms
from django.contrib.auth import password_validation
from django.contrib.auth.forms import UserChangeForm, UserCreationForm
from django.core.exceptions import ValidationError

from .models import User


class RegisterForm(forms.ModelForm):
    password = forms.CharField(strip=False)

    class Meta:
        model = User
        fields = ("username", "email", "role", "specialization")

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["role"].required = False
        self.fields["specialization"].required = False

    def clean_email(self):
        email = self.cleaned_data["email"].lower()
        if User.objects.filter(email__iexact=email).exists():
            raise ValidationError("An account with this email already exists.")
        return email

    def clean_role(self):
        return self.cleaned_data.get("role") or User.Role.USER

    def clean(self):
        cleaned_data = super().clean()
        role = cleaned_data.get("role")
        if role in User.STAFF_ROLES:
            if not cleaned_data.get("specialization"):
                self.add_error("specialization", "Specialization is required for admin or officer role.")
        elif role:
            cleaned_data["specialization"] = ""

        password = cleaned_data.get("password")
        if password:
            self.instance.username = cleaned_data.get("username", "")
            self.instance.email = cleaned_data.get("email", "")
            try:
                password_validation.validate_password(password, self.instance)
            except ValidationError as error:
                self.add_error("password", error)
        return cleaned_data

    def save(self, commit=True):
        user = super().save(commit=False)
        user.specialization = self.cleaned_data.get("specialization", "")
        user.set_password(self.cleaned_data["password"])
        if commit:
            user.save()
        return user


class LoginForm(forms.Form):
    email = forms.EmailField()
    password = forms.CharField(strip=False)



class AdminUserCreationForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ("username", "email")


class AdminUserChangeForm(UserChangeForm):
    class Meta(UserChangeForm.Meta):
        model = User
