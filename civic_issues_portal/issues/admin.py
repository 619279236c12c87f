from django.contrib import admin

from .models import Issue, IssueComment, IssueLike


class IssueCommentInline(admin.TabularInline):
    model = IssueComment
    extra = 0
    readonly_fields = ("author", "user", "created_at")


class IssueLikeInline(admin.TabularInline):
    model = IssueLike
    extra = 0
    readonly_fields = ("liker", "created_at")


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "specialization",
        "status",
        "user",
        "created_at",
    )
    list_filter = ("status", "specialization", "created_at")
    search_fields = ("title", "description", "user__username")
    readonly_fields = ("created_at", "updated_at", "last_status_updated_at")
    inlines = [IssueCommentInline, IssueLikeInline]


@admin.register(IssueComment)
class IssueCommentAdmin(admin.ModelAdmin):
    list_display = ("id", "issue", "author", "created_at")
    search_fields = ("issue__title", "author", "content")
    readonly_fields = ("created_at",)
