from django.urls import path

from record_lock.views import lock_view

from . import views

urlpatterns = [
    path("api/stok", views.products, name="products"),
    path("api/penjualan", views.transactions, name="transactions"),
    path("api/lock", lock_view, name="lock"),
]
