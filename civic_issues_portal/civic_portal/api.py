import json
import logging

from django.http import JsonResponse, QueryDict
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from accounts.identity import resolve_actor

from .errors import ApiError, AuthenticationError, ValidationError

logger = logging.getLogger(__name__)


@method_decorator(csrf_exempt, name="dispatch")
class ApiView(View):
    """
    Base for the JSON endpoints.

    Resolves the caller into ``self.actor`` (``None`` for anonymous
    callers) before the handler runs and renders any ``ApiError`` as a
    JSON body with the error's status code. Handlers listed in
    ``authenticated_methods`` reject anonymous callers with 401.
    """

    authenticated_methods = ()

    def dispatch(self, request, *args, **kwargs):
        try:
            self.actor = resolve_actor(request.headers.get("Authorization"))
            if self.actor is None and request.method.lower() in self.authenticated_methods:
                raise AuthenticationError("Not authorized, no token")
            return super().dispatch(request, *args, **kwargs)
        except ApiError as error:
            if error.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.path, error.message)
            return JsonResponse(error.as_dict(), status=error.status_code)

    def load_body(self, request):
        """Returns ``(data, files)`` for JSON, urlencoded and multipart bodies."""
        if request.content_type == "application/json":
            if not request.body:
                return {}, {}
            try:
                payload = json.loads(request.body)
            except ValueError as exc:
                raise ValidationError("Request body is not valid JSON") from exc
            if not isinstance(payload, dict):
                raise ValidationError("Request body must be a JSON object")
            return payload, {}

        if request.method == "POST":
            return request.POST.dict(), request.FILES
        if request.content_type == "multipart/form-data":
            data, files = request.parse_file_upload(request.META, request)
            return data.dict(), files
        return QueryDict(request.body).dict(), {}

    def render(self, payload, status=200):
        return JsonResponse(payload, status=status, safe=not isinstance(payload, list))
