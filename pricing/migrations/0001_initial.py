from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="MetalPrice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("metal", models.CharField(max_length=40)),
                ("purity", models.CharField(max_length=40)),
                ("price_per_gram", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("source", models.CharField(blank=True, default="manual", max_length=40)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["metal", "purity"],
                "constraints": [
                    models.UniqueConstraint(fields=("metal", "purity"), name="unique_metal_purity"),
                    models.CheckConstraint(condition=models.Q(price_per_gram__gte=0), name="metal_price_non_negative"),
                ],
            },
        ),
    ]
