from django.apps import AppConfig


class StockConfig(AppConfig):
    name = "stock"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        from record_lock import kinds

        from .models import PRODUCT, TRANSACTION, Product, Transaction

        # Transaction is registered last so payloads carrying both kd_trans
        # and kode_brg resolve to the transaction.
        kinds.register(PRODUCT, Product, id_field="productId", aliases=("kode_brg",))
        kinds.register(
            TRANSACTION, Transaction, id_field="transactionId", aliases=("kd_trans",)
        )
