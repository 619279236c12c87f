from civic_portal.api import ApiView

from .engagement import EngagementLedger, identity_token
from .services import IssueService


def render_issues(issues):
    return [issue.as_dict() for issue in issues]


class IssueListView(ApiView):
    authenticated_methods = ("post",)

    def get(self, request):
        issues = IssueService().list_for(self.actor, request.GET)
        return self.render(render_issues(issues))

    def post(self, request):
        data, files = self.load_body(request)
        issue = IssueService().create(self.actor, data, files)
        return self.render({"message": "Issue reported successfully", "issue": issue.as_dict()}, status=201)


class PublicIssueListView(ApiView):
    def get(self, request):
        return self.render(render_issues(IssueService().list_public(request.GET)))


class OwnIssueListView(ApiView):
    authenticated_methods = ("get",)

    def get(self, request):
        return self.render(render_issues(IssueService().list_own(self.actor, request.GET)))


class IssueSummaryView(ApiView):
    def get(self, request):
        return self.render(IssueService().summary_for(self.actor, request.GET))


class IssueDetailView(ApiView):
    authenticated_methods = ("get", "put", "patch", "delete")

    def get(self, request, pk):
        issue = IssueService().get(self.actor, pk)
        return self.render({"issue": issue.as_dict()})

    def put(self, request, pk):
        data, files = self.load_body(request)
        issue = IssueService().update(self.actor, pk, data, files)
        return self.render({"message": "Issue updated successfully", "issue": issue.as_dict()})

    patch = put

    def delete(self, request, pk):
        IssueService().delete(self.actor, pk)
        return self.render({"message": "Issue deleted successfully"})


class IssueLikeView(ApiView):
    def post(self, request, pk):
        identity = identity_token(self.actor, request.headers.get("X-Session-Id"))
        likes = EngagementLedger().toggle_like(pk, identity)
        return self.render({"likes": likes, "liked": identity in likes})


class IssueCommentView(ApiView):
    def get(self, request, pk):
        comments = EngagementLedger().comments(pk)
        return self.render([comment.as_dict() for comment in comments])

    def post(self, request, pk):
        identity = identity_token(self.actor, request.headers.get("X-Session-Id"))
        data, _ = self.load_body(request)
        comment = EngagementLedger().add_comment(pk, identity, data, actor=self.actor)
        return self.render(comment.as_dict(), status=201)
