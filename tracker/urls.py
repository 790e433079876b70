"""URL routes for the tracker app."""

from django.urls import path

from . import views

app_name = "tracker"

urlpatterns = [
    path("health/", views.health_check, name="health_check"),
    # Accounts
    path("auth/register/", views.register, name="register"),
    path("auth/login/", views.login, name="login"),
    path("users/me/", views.me, name="me"),
    # Projects
    path("projects/", views.projects, name="projects"),
    path("projects/<int:project_id>/", views.project_detail, name="project_detail"),
    path("projects/<int:project_id>/join/", views.project_join, name="project_join"),
    path("projects/<int:project_id>/members/", views.project_members, name="project_members"),
    path("projects/<int:project_id>/bugs/", views.project_bugs, name="project_bugs"),
    path("my-projects/", views.my_projects, name="my_projects"),
    # Bugs
    path("bugs/<int:bug_id>/", views.bug_update, name="bug_update"),
    path("bugs/<int:bug_id>/assign/", views.bug_assign, name="bug_assign"),
    path("bugs/<int:bug_id>/unassign/", views.bug_unassign, name="bug_unassign"),
    path("bugs/<int:bug_id>/resolve/", views.bug_resolve, name="bug_resolve"),
]
