import logging

from django.contrib.auth import authenticate
from django.db import DatabaseError

from civic_portal.api import ApiView
from civic_portal.errors import NotFoundError, PersistenceError, ValidationError

from .forms import LoginForm, RegisterForm
from .models import User
from .tokens import issue_token

logger = logging.getLogger(__name__)


class RegisterView(ApiView):
    def post(self, request):
        data, _ = self.load_body(request)
        form = RegisterForm(data)
        if not form.is_valid():
            raise ValidationError.from_form(form)
        try:
            user = form.save()
        except DatabaseError as exc:
            logger.exception("Could not create user %s", form.cleaned_data.get("username"))
            raise PersistenceError() from exc

        logger.info("Registered %s as %s", user.username, user.role)
        return self.render({"token": issue_token(user), "user": user.public_view()}, status=201)


class LoginView(ApiView):
    def post(self, request):
        data, _ = self.load_body(request)
        form = LoginForm(data)
        if not form.is_valid():
            raise ValidationError.from_form(form)

        account = User.objects.filter(email__iexact=form.cleaned_data["email"]).first()
        user = None
        if account is not None:
            user = authenticate(request, username=account.username, password=form.cleaned_data["password"])
        if user is None:
            raise ValidationError("Invalid credentials")
        return self.render({"token": issue_token(user), "user": user.public_view()})


class MeView(ApiView):
    authenticated_methods = ("get",)

    def get(self, request):
        user = User.objects.filter(pk=self.actor.id).first()
        if user is None:
            raise NotFoundError("User not found")
        return self.render(user.public_view())
