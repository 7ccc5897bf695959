"""
Pagination shared by list endpoints.
"""
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 10
    page_size_query_param = 'limit'
    max_page_size = 100

    def get_paginated_response(self, data):
        return Response({
            'data': data,
            'pagination': {
                'page': self.page.number,
                'limit': self.get_page_size(self.request) or self.page_size,
                'total': self.page.paginator.count,
                'totalPages': self.page.paginator.num_pages,
            },
        })


class AuditLogPagination(StandardResultsSetPagination):
    page_size = 50


def paginate(view, request, queryset, serializer_class, context=None):
    """Paginate ``queryset`` and serialize the current page."""
    paginator = view.pagination_class() if getattr(view, 'pagination_class', None) else StandardResultsSetPagination()
    page = paginator.paginate_queryset(queryset, request, view=view)
    serializer = serializer_class(page, many=True, context=context or {'request': request})
    return paginator.get_paginated_response(serializer.data)
