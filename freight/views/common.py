"""
Shared view helpers: the error envelope and office-scoped querysets.
"""

from django.db.models import Q
from rest_framework.response import Response

from ..exceptions import NotFoundException, OfficeOwnershipException
from ..models import Dispatch, Shipment
from ..services.shipment_service import normalize_ids
from ..services.visibility import Actor, VisibilityFilter


def error_response(exc):
    """Render a BusinessException in the API error envelope."""
    return Response({
        'success': False,
        'error': {
            'code': exc.code,
            'message': exc.message,
            'details': exc.details,
        }
    }, status=exc.http_status)


def success_response(data, status=200):
    return Response({'success': True, 'data': data}, status=status)


class OfficeScopedMixin:
    """
    Restricts querysets to what the requesting user may see.

    Users holding the all-offices capability see everything; others see
    records of their own office and of manifests leaving or reaching it.
    Seeing a shipment is not owning it. The origin office edits, loads
    and voids it; the destination office receives and delivers it.
    """

    def get_actor(self):
        if not hasattr(self, '_actor'):
            self._actor = Actor.from_user(self.request.user)
        return self._actor

    def get_visibility(self):
        if not hasattr(self, '_visibility'):
            actor = self.get_actor()
            dispatches = []
            if not actor.is_global and actor.office_id:
                dispatches = Dispatch.objects.filter(
                    Q(origin_office_id=actor.office_id) | Q(destination_office_id=actor.office_id)
                ).prefetch_related('items')
            self._visibility = VisibilityFilter(actor, dispatches)
        return self._visibility

    def visible_shipment_ids(self):
        if not hasattr(self, '_visible_shipment_ids'):
            actor = self.get_actor()
            candidates = Shipment.objects.all()
            if not actor.is_global and not actor.office_id:
                candidates = Shipment.objects.none()
            elif not actor.is_global:
                office = actor.office_id
                candidates = candidates.filter(
                    Q(origin_office_id=office) | Q(destination_office_id=office)
                    | Q(dispatch_items__dispatch__origin_office_id=office)
                    | Q(dispatch_items__dispatch__destination_office_id=office)
                ).distinct()
            self._visible_shipment_ids = self.get_visibility().visible_shipment_ids(
                candidates.only('id', 'origin_office_id', 'destination_office_id')
            )
        return self._visible_shipment_ids

    def visible_shipments(self):
        if self.get_actor().is_global:
            return Shipment.objects.all()
        return Shipment.objects.filter(id__in=self.visible_shipment_ids())

    def require_visible_shipments(self, shipment_ids):
        """Raise NotFoundException for existing ids the user cannot see."""
        if self.get_actor().is_global:
            return
        ids, _ = normalize_ids(shipment_ids)
        visible = self.visible_shipment_ids()
        hidden = [i for i in ids if i not in visible and Shipment.objects.filter(id=i).exists()]
        if hidden:
            raise NotFoundException('Shipment', hidden)

    def shipment_scope(self):
        """Shipments the user may act on indirectly, None when unrestricted."""
        if self.get_actor().is_global:
            return None
        return self.visible_shipments()

    def require_own_office(self, office_id, action='act for'):
        """Raise OfficeOwnershipException unless office_id is the user's office."""
        actor = self.get_actor()
        if actor.is_global or not office_id:
            return
        if office_id != actor.office_id:
            raise OfficeOwnershipException(
                f"Office {actor.office_id or '-'} cannot {action} office {office_id}",
                {'office_id': office_id, 'user_office_id': actor.office_id}
            )

    def require_owned_shipments(self, shipment_ids):
        """Raise OfficeOwnershipException for existing shipments that originate at another office."""
        actor = self.get_actor()
        if actor.is_global:
            return
        ids, _ = normalize_ids(shipment_ids)
        foreign = sorted(
            str(i) for i in Shipment.objects.filter(id__in=ids)
            .exclude(origin_office_id=actor.office_id).values_list('id', flat=True)
        )
        if foreign:
            raise OfficeOwnershipException(
                f"Shipments are owned by another office than {actor.office_id or '-'}",
                {'shipment_ids': foreign, 'user_office_id': actor.office_id}
            )

    def require_visible_dispatch(self, dispatch_id):
        """Raise NotFoundException for an existing manifest that does not touch the user's office."""
        if self.get_actor().is_global:
            return
        ids, _ = normalize_ids([dispatch_id])
        dispatch = Dispatch.objects.filter(id__in=ids).first()
        if dispatch is not None and not self.get_visibility().dispatches([dispatch]):
            raise NotFoundException('Dispatch', [dispatch_id])
