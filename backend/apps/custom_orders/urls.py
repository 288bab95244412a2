"""
Custom order URL configuration.
"""

from django.urls import path
from .views import (
    CustomOrdersView,
    CustomOrderDetailView,
    AcceptCustomOrderView,
    MaterializeCustomOrderView,
    UpdateCustomOrderBuyerView,
    UpdateCustomOrderStatusView,
)

app_name = 'custom_orders'

urlpatterns = [
    # GET, POST /api/custom-orders
    path('', CustomOrdersView.as_view(), name='list'),

    # GET /api/custom-orders/:customOrderId
    path('<uuid:custom_order_id>', CustomOrderDetailView.as_view(), name='detail'),

    # POST /api/custom-orders/:customOrderId/accept
    path('<uuid:custom_order_id>/accept', AcceptCustomOrderView.as_view(), name='accept'),

    # POST /api/custom-orders/:customOrderId/materialize
    path('<uuid:custom_order_id>/materialize', MaterializeCustomOrderView.as_view(), name='materialize'),

    # PATCH /api/custom-orders/:customOrderId/buyer
    path('<uuid:custom_order_id>/buyer', UpdateCustomOrderBuyerView.as_view(), name='update_buyer'),

    # PATCH /api/custom-orders/:customOrderId/status
    path('<uuid:custom_order_id>/status', UpdateCustomOrderStatusView.as_view(), name='update_status'),
]
