from __future__ import annotations

from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler

from . import services
from .errors import DocumentError
from .serializers import document_to_dict


def api_exception_handler(exc, context):
    """Render every API error as ``{"code", "message", "fields"?}``."""
    if isinstance(exc, DocumentError):
        return Response(exc.as_payload(), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, drf_exceptions.ParseError):
        code = "VALIDATION_ERROR"
    else:
        code = str(getattr(exc, "default_code", "error")).upper()
    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    response.data = {"code": code, "message": str(detail or exc)}
    return response


class DocumentCreateAPI(APIView):
    def post(self, request, kind):
        """Create a document.

        Request JSON: the same snapshot shape PUT accepts; `modifiedAt` is ignored.
        """
        doc = services.create_document(kind, request.data)
        return Response(document_to_dict(doc), status=201)


class DocumentDetailAPI(APIView):
    def get(self, request, kind, pk):
        doc = services.get_document(kind, pk)
        return Response(document_to_dict(doc))

    def put(self, request, kind, pk):
        """Apply a full document snapshot.

        Request JSON:
          {"modifiedAt": "<last seen>", "billTo": "...", "items": [{"id": "...", "productName": "...",
           "details": [{"id": "...", "detail": "...", "unitPrice": "10.00", "qty": "2"}]}], ...}

        Collections absent from the body are left as stored; `[]` clears one.
        """
        doc = services.update_document(kind, pk, request.data)
        return Response(document_to_dict(doc))

    def delete(self, request, kind, pk):
        services.delete_document(kind, pk)
        return Response(status=204)


class DocumentRestoreAPI(APIView):
    def post(self, request, kind, pk):
        doc = services.restore_document(kind, pk)
        return Response(document_to_dict(doc))


class DocumentCopyAPI(APIView):
    def post(self, request, kind, pk):
        doc = services.copy_document(kind, pk)
        return Response(document_to_dict(doc), status=201)
