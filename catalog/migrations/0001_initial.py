import catalog.models
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product_id",
                    models.CharField(default=catalog.models.generate_product_id, max_length=64, unique=True),
                ),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("category_id", models.IntegerField(blank=True, db_index=True, null=True)),
                ("making_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("stock_quantity", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                (
                    "metals",
                    models.JSONField(blank=True, default=list, validators=[catalog.models.validate_metals]),
                ),
                (
                    "gemstones",
                    models.JSONField(blank=True, default=list, validators=[catalog.models.validate_gemstones]),
                ),
                ("images", models.JSONField(blank=True, default=list)),
                ("certificates", models.JSONField(blank=True, default=list)),
                ("total_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("latest_price_update", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(making_price__gte=0), name="product_making_price_non_negative"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("variant_id", models.CharField(default=catalog.models.generate_variant_id, max_length=64)),
                ("name", models.CharField(max_length=120)),
                ("stock_quantity", models.PositiveIntegerField(default=0)),
                ("making_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "metals",
                    models.JSONField(blank=True, default=list, validators=[catalog.models.validate_metals]),
                ),
                ("total_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="variants", to="catalog.product"
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "indexes": [models.Index(fields=["product", "variant_id"], name="variant_unit_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("product", "variant_id"), name="unique_variant_id_per_product"),
                    models.CheckConstraint(
                        condition=models.Q(making_price__gte=0), name="variant_making_price_non_negative"
                    ),
                ],
            },
        ),
    ]
