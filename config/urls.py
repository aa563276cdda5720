from django.contrib import admin
from django.urls import include, path

from core import views_health


urlpatterns = [
    # Health checks (safe for monitors)
    path("health/", views_health.health, name="health"),

    # Document API
    path("api/v1/", include("documents.urls")),

    path("admin/", admin.site.urls),
]
