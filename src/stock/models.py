from django.db import models

from record_lock.models import LockableModel

PRODUCT = "product"
TRANSACTION = "transaction"


class Product(LockableModel):
    """
    A stock item (``stok``).

    ``quantity`` is the number of units currently on hand; sales decrement
    it and deleting or shrinking a sale gives units back.
    """

    code = models.CharField(max_length=20, primary_key=True, db_column="kode_brg")
    name = models.CharField(max_length=100, unique=True, db_column="nama_brg")
    unit = models.CharField(max_length=20, db_column="satuan")
    quantity = models.PositiveIntegerField(default=0, db_column="jml_stok")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "stok"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.code} {self.name} ({self.quantity} {self.unit})"

    def as_dict(self, owner_id: str | None = None) -> dict:
        return {
            "kode_brg": self.code,
            "nama_brg": self.name,
            "satuan": self.unit,
            "jml_stok": self.quantity,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            **self.lock_state(owner_id),
        }


class Transaction(LockableModel):
    """A sales transaction (``t_jual``) against one product."""

    code = models.CharField(max_length=10, primary_key=True, db_column="kd_trans")
    date = models.DateField(db_column="tgl_trans")
    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="transactions",
        db_column="kode_brg",
    )
    quantity = models.PositiveIntegerField(db_column="jml_jual")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "t_jual"
        ordering = ["-date", "-code"]

    def __str__(self) -> str:
        return f"{self.code} {self.date} {self.product_id} x{self.quantity}"

    def as_dict(self, owner_id: str | None = None) -> dict:
        return {
            "kd_trans": self.code,
            "tgl_trans": self.date.isoformat(),
            "kode_brg": self.product_id,
            "jml_jual": self.quantity,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            **self.lock_state(owner_id),
        }
