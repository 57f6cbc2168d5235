from typing import Any, Callable, Dict

from django.core.paginator import Paginator
from rest_framework import serializers


class PaginationQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1, min_value=1, help_text="Page number (1-based)")
    page_size = serializers.IntegerField(required=False, default=10, min_value=1, max_value=100, help_text="Number of items per page")


def paginate(qs, query_params, serialize: Callable[[Any], Any]) -> Dict[str, Any]:
    """Slice `qs` by the page/page_size query params; invalid values fall back to the defaults."""
    pager_ser = PaginationQuerySerializer(data=query_params)
    pager = pager_ser.validated_data if pager_ser.is_valid() else {}
    paginator = Paginator(qs, pager.get("page_size", 10))
    page_obj = paginator.get_page(pager.get("page", 1))
    return {
        "count": paginator.count,
        "page": page_obj.number,
        "num_pages": paginator.num_pages,
        "results": serialize(page_obj.object_list),
    }
