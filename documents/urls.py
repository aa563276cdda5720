from django.urls import path

from . import views
from .kinds import KIND_SPECS

app_name = "documents"

urlpatterns = []

for _spec in KIND_SPECS.values():
    _seg = _spec.url_segment
    _kw = {"kind": _spec.kind}
    _name = _spec.kind.replace("_", "-")
    urlpatterns += [
        path(f"{_seg}/", views.DocumentCreateAPI.as_view(), _kw, name=f"{_name}-create"),
        path(f"{_seg}/<str:pk>/", views.DocumentDetailAPI.as_view(), _kw, name=f"{_name}-detail"),
        path(f"{_seg}/<str:pk>/restore/", views.DocumentRestoreAPI.as_view(), _kw, name=f"{_name}-restore"),
        path(f"{_seg}/<str:pk>/copy/", views.DocumentCopyAPI.as_view(), _kw, name=f"{_name}-copy"),
    ]
