from django.urls import path

from .views import (
    IssueCommentView,
    IssueDetailView,
    IssueLikeView,
    IssueListView,
    IssueSummaryView,
    OwnIssueListView,
    PublicIssueListView,
)

app_name = "issues"

urlpatterns = [
    path("", IssueListView.as_view(), name="issue_list"),
    path("public/", PublicIssueListView.as_view(), name="public_issue_list"),
    path("mine/", OwnIssueListView.as_view(), name="own_issue_list"),
    path("summary/", IssueSummaryView.as_view(), name="issue_summary"),
    path("<int:pk>/", IssueDetailView.as_view(), name="issue_detail"),
    path("<int:pk>/like/", IssueLikeView.as_view(), name="issue_like"),
    path("<int:pk>/comments/", IssueCommentView.as_view(), name="issue_comments"),
]
