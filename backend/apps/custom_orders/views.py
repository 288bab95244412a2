"""
Custom order views.

Errors raised by the service layer are AppError subclasses and reach the
client through the project's DRF exception handler.
"""

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import AllowAny

from apps.core.authentication import require_user, display_name
from apps.core.exceptions import NotFound, PermissionDenied
from apps.orders.serializers import FulfillmentOrderSerializer
from apps.orders.services import order_materializer
from .serializers import (
    CustomOrderSerializer,
    CreateCustomOrderSerializer,
    DeliveryDetailsSerializer,
    UpdateBuyerSerializer,
    UpdateStatusSerializer,
)
from .services import custom_order_service, custom_order_link


class CustomOrdersView(APIView):
    """
    POST /api/custom-orders            create a proposal (caller is the seller)
    GET  /api/custom-orders?role=buyer list the caller's orders as buyer or seller
    """
    permission_classes = [AllowAny]

    def get(self, request):
        user = require_user(request)
        role = request.query_params.get('role', 'buyer')
        orders = custom_order_service.list_custom_orders(user['user_id'], role)
        serializer = CustomOrderSerializer(orders, many=True)
        return Response({
            'customOrders': serializer.data,
            'count': len(serializer.data),
        })

    def post(self, request):
        user = require_user(request)
        serializer = CreateCustomOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order_id = custom_order_service.create_custom_order(
            seller_id=user['user_id'],
            seller_name=display_name(user, 'Seller'),
            buyer_id=data['buyer_id'],
            buyer_name=data['buyer_name'],
            conversation_id=data['conversation_id'],
            items=data['items'],
            shipping_cost=data['shipping_cost'],
            payment_method=data['payment_method'],
            item_type=data.get('item_type'),
            notes=data.get('notes'),
            notify_recipient=data.get('notify_recipient'),
            announce=data['announce'],
        )
        order = custom_order_service.get_custom_order(order_id)

        return Response({
            'customOrder': CustomOrderSerializer(order).data,
            'link': custom_order_link(order_id),
        }, status=status.HTTP_201_CREATED)


class CustomOrderDetailView(APIView):
    """
    GET /api/custom-orders/:customOrderId

    Any signed-in user holding the link may view a proposal, since checkout
    can hand it to a different buyer account.
    """
    permission_classes = [AllowAny]

    def get(self, request, custom_order_id):
        user = require_user(request)
        order = custom_order_service.get_custom_order(custom_order_id)
        if order is None:
            raise NotFound('Custom order not found', code='CUSTOM_ORDER_NOT_FOUND')

        data = CustomOrderSerializer(order).data
        data['canAccept'] = (
            user['user_id'] != order.seller_id
            and order.status == order.STATUS_PENDING
            and not order.is_expired()
        )
        if user['user_id'] in (order.buyer_id, order.seller_id):
            orders = order_materializer.list_orders_for_custom_order(order.id)
            data['orders'] = FulfillmentOrderSerializer(orders, many=True).data
        return Response(data)


class AcceptCustomOrderView(APIView):
    """
    POST /api/custom-orders/:customOrderId/accept

    Checkout: accept with delivery details and create the fulfillment
    orders. A partial materialization is reported with 207 so the client
    can retry through the materialize endpoint.
    """
    permission_classes = [AllowAny]

    def post(self, request, custom_order_id):
        user = require_user(request)
        serializer = DeliveryDetailsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = custom_order_service.checkout_custom_order(
            custom_order_id,
            user['user_id'],
            display_name(user, 'Buyer'),
            serializer.validated_data['buyer_address'],
            serializer.validated_data['buyer_phone'],
        )

        return Response({
            'customOrder': CustomOrderSerializer(result.order).data,
            'materialization': result.materialization.to_dict(),
        }, status=status.HTTP_200_OK if result.materialization.complete else status.HTTP_207_MULTI_STATUS)


class MaterializeCustomOrderView(APIView):
    """
    POST /api/custom-orders/:customOrderId/materialize
    """
    permission_classes = [AllowAny]

    def post(self, request, custom_order_id):
        user = require_user(request)
        result = custom_order_service.materialize(custom_order_id, user['user_id'])
        return Response(
            {'materialization': result.to_dict()},
            status=status.HTTP_200_OK if result.complete else status.HTTP_207_MULTI_STATUS
        )


class UpdateCustomOrderBuyerView(APIView):
    """
    PATCH /api/custom-orders/:customOrderId/buyer

    The caller takes over the proposal as its buyer.
    """
    permission_classes = [AllowAny]

    def patch(self, request, custom_order_id):
        user = require_user(request)
        serializer = UpdateBuyerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = custom_order_service.update_custom_order_buyer(
            custom_order_id,
            user['user_id'],
            serializer.validated_data.get('buyer_name') or display_name(user, 'Buyer'),
        )
        return Response({'customOrder': CustomOrderSerializer(order).data})


class UpdateCustomOrderStatusView(APIView):
    """
    PATCH /api/custom-orders/:customOrderId/status

    Seller-side fulfillment updates (PAID, SHIPPED, DELIVERED, CANCELLED).
    """
    permission_classes = [AllowAny]

    def patch(self, request, custom_order_id):
        user = require_user(request)
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields = dict(serializer.validated_data)
        new_status = fields.pop('status')

        order = custom_order_service.get_custom_order(custom_order_id)
        if order is None:
            raise NotFound('Custom order not found', code='CUSTOM_ORDER_NOT_FOUND')
        if user['user_id'] != order.seller_id:
            raise PermissionDenied('Only the seller can update the order status')

        order = custom_order_service.update_custom_order_status(custom_order_id, new_status, **fields)
        return Response({'customOrder': CustomOrderSerializer(order).data})
