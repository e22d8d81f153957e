from django.db.models import Q


class FilterableQuerysetMixin:
    """
    Mixin to provide common filtering functionality for querysets.
    Reduces code duplication in ViewSets that need query parameter filtering.
    """

    def get_queryset(self):
        """
        Returns filtered queryset based on query parameters.
        Override filter_fields in subclasses to specify which fields to filter.
        """
        qs = super().get_queryset()

        for field in getattr(self, "filter_fields", []):
            value = self.request.query_params.get(field)
            if value:
                qs = qs.filter(**{f"{field}__iexact": value})

        return qs


class RoleScopedQuerysetMixin:
    """
    Mixin to scope querysets by the requesting user's role.

    Admins see every record. Vendors see records whose vendor_field points
    at their vendor profile. Tourists see records whose tourist_field points
    at themselves. Set either field to None to hide the records from that role.
    """

    vendor_field = "vendor"
    tourist_field = None

    def get_queryset(self):
        """
        Returns queryset filtered by the owner relationship of the user's role.
        """
        qs = super().get_queryset()
        user = self.request.user

        if not user or not user.is_authenticated:
            return qs.none()
        if user.role == "admin":
            return qs
        if user.role == "vendor" and self.vendor_field:
            return qs.filter(**{f"{self.vendor_field}__user": user})
        if user.role == "tourist" and self.tourist_field:
            return qs.filter(**{self.tourist_field: user})
        return qs.none()


class OrderedQuerysetMixin:
    """
    Mixin to provide default ordering for querysets.
    """

    def get_queryset(self):
        """
        Returns ordered queryset based on default_ordering.
        Override default_ordering in subclasses to specify ordering.
        """
        qs = super().get_queryset()
        ordering = getattr(self, "default_ordering", ["-created_at"])
        return qs.order_by(*ordering)


class SearchableQuerysetMixin:
    """
    Mixin to provide search functionality for querysets.
    """

    def get_queryset(self):
        """
        Returns queryset with search functionality.
        Override search_fields in subclasses to specify which fields to search.
        """
        qs = super().get_queryset()
        search_query = self.request.query_params.get("search")

        if search_query:
            search_fields = getattr(self, "search_fields", [])
            if search_fields:
                q_objects = Q()
                for field in search_fields:
                    q_objects |= Q(**{f"{field}__icontains": search_query})
                qs = qs.filter(q_objects)

        return qs


class RoleFilterableQuerysetMixin(RoleScopedQuerysetMixin, FilterableQuerysetMixin, OrderedQuerysetMixin):
    """
    Combined mixin for role-scoped views with filtering and ordering.
    """
