import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("locked_by", models.CharField(blank=True, max_length=64, null=True)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                (
                    "code",
                    models.CharField(
                        db_column="kode_brg", max_length=20, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(db_column="nama_brg", max_length=100, unique=True)),
                ("unit", models.CharField(db_column="satuan", max_length=20)),
                ("quantity", models.PositiveIntegerField(db_column="jml_stok", default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "stok",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("locked_by", models.CharField(blank=True, max_length=64, null=True)),
                ("locked_at", models.DateTimeField(blank=True, null=True)),
                (
                    "code",
                    models.CharField(
                        db_column="kd_trans", max_length=10, primary_key=True, serialize=False
                    ),
                ),
                ("date", models.DateField(db_column="tgl_trans")),
                ("quantity", models.PositiveIntegerField(db_column="jml_jual")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "product",
                    models.ForeignKey(
                        db_column="kode_brg",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="stock.product",
                    ),
                ),
            ],
            options={
                "db_table": "t_jual",
                "ordering": ["-date", "-code"],
            },
        ),
    ]
