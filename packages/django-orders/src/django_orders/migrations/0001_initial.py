# Generated manually for standalone django-orders package

import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def retirable_fields(name_unique=False):
    return [
        (
            "id",
            models.BigAutoField(
                auto_created=True,
                primary_key=True,
                serialize=False,
                verbose_name="ID",
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
        ("name", models.CharField(max_length=255, unique=name_unique)),
        ("description", models.TextField(blank=True, default="")),
        ("retired", models.BooleanField(default=False)),
        ("retire_reason", models.CharField(blank=True, default="", max_length=255)),
        ("date_retired", models.DateTimeField(blank=True, null=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("contenttypes", "0002_remove_content_type_name"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ConceptClass",
            fields=retirable_fields(),
            options={
                "ordering": ["name"],
                "verbose_name_plural": "concept classes",
            },
        ),
        migrations.CreateModel(
            name="Concept",
            fields=retirable_fields() + [
                (
                    "code",
                    models.CharField(
                        help_text="Stable code of the concept in its source dictionary",
                        max_length=100,
                        unique=True,
                    ),
                ),
                (
                    "concept_class",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="concepts",
                        to="django_orders.conceptclass",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Drug",
            fields=retirable_fields() + [
                ("strength", models.CharField(blank=True, default="", max_length=100)),
                (
                    "concept",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="drugs",
                        to="django_orders.concept",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="OrderType",
            fields=retirable_fields(name_unique=True) + [
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="django_orders.ordertype",
                    ),
                ),
                (
                    "concept_classes",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Orders for concepts of these classes default to this type",
                        related_name="order_types",
                        to="django_orders.conceptclass",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="CareSetting",
            fields=retirable_fields(name_unique=True) + [
                (
                    "care_setting_type",
                    models.CharField(
                        choices=[("OUTPATIENT", "Outpatient"), ("INPATIENT", "Inpatient")],
                        max_length=20,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="OrderFrequency",
            fields=retirable_fields() + [
                (
                    "frequency_per_day",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=8, null=True),
                ),
                (
                    "concept",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_frequency",
                        to="django_orders.concept",
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "order frequencies",
            },
        ),
        migrations.CreateModel(
            name="OrderNumberSequence",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "scope",
                    models.CharField(
                        help_text="Sequence scope, e.g. 'order_number'",
                        max_length=50,
                        unique=True,
                    ),
                ),
                (
                    "current_value",
                    models.PositiveBigIntegerField(default=0, help_text="Last value handed out"),
                ),
            ],
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                (
                    "order_number",
                    models.CharField(
                        help_text="Human-facing order number, immutable once assigned",
                        max_length=50,
                        unique=True,
                    ),
                ),
                (
                    "patient_id",
                    models.CharField(
                        help_text="ID of the patient (CharField for UUID support)",
                        max_length=255,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("GENERIC", "Generic"), ("TEST", "Test"), ("DRUG", "Drug")],
                        default="GENERIC",
                        help_text="Order variant; decides which fields revisions must match",
                        max_length=20,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("NEW", "New"),
                            ("REVISE", "Revise"),
                            ("DISCONTINUE", "Discontinue"),
                        ],
                        default="NEW",
                        max_length=20,
                    ),
                ),
                (
                    "start_date",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="When the order takes effect",
                    ),
                ),
                (
                    "date_stopped",
                    models.DateTimeField(
                        blank=True,
                        help_text="Set when a later order revises or discontinues this one",
                        null=True,
                    ),
                ),
                (
                    "auto_expire_date",
                    models.DateTimeField(
                        blank=True,
                        help_text="Planned natural expiry (null = until stopped)",
                        null=True,
                    ),
                ),
                (
                    "order_reason_non_coded",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("instructions", models.TextField(blank=True, default="")),
                (
                    "dose",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True),
                ),
                ("dose_units", models.CharField(blank=True, default="", max_length=50)),
                (
                    "quantity",
                    models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True),
                ),
                ("encounter_id", models.CharField(blank=True, default="", max_length=255)),
                ("voided", models.BooleanField(default=False)),
                ("void_reason", models.CharField(blank=True, default="", max_length=255)),
                ("date_voided", models.DateTimeField(blank=True, null=True)),
                (
                    "patient_content_type",
                    models.ForeignKey(
                        help_text="Content type of the patient model",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="contenttypes.contenttype",
                    ),
                ),
                (
                    "concept",
                    models.ForeignKey(
                        help_text="What is being ordered",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="django_orders.concept",
                    ),
                ),
                (
                    "drug",
                    models.ForeignKey(
                        blank=True,
                        help_text="Drug formulation, required for drug orders",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="django_orders.drug",
                    ),
                ),
                (
                    "order_type",
                    models.ForeignKey(
                        blank=True,
                        help_text="Resolved from the concept class or order context when blank",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="django_orders.ordertype",
                    ),
                ),
                (
                    "care_setting",
                    models.ForeignKey(
                        blank=True,
                        help_text="Resolved from the order context when blank",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="django_orders.caresetting",
                    ),
                ),
                (
                    "previous_order",
                    models.ForeignKey(
                        blank=True,
                        help_text="Order this one revises or discontinues",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="successors",
                        to="django_orders.order",
                    ),
                ),
                (
                    "order_reason",
                    models.ForeignKey(
                        blank=True,
                        help_text="Coded reason, e.g. for a discontinuation",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="django_orders.concept",
                    ),
                ),
                (
                    "frequency",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="django_orders.orderfrequency",
                    ),
                ),
                (
                    "orderer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Provider who placed the order",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders_placed",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "encounter_content_type",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="contenttypes.contenttype",
                    ),
                ),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "voided_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-start_date", "-id"],
                "indexes": [
                    models.Index(
                        fields=["patient_content_type", "patient_id"],
                        name="orders_patient_idx",
                    ),
                    models.Index(
                        fields=["concept", "care_setting"],
                        name="orders_concept_setting_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(voided=False),
                        fields=("previous_order",),
                        name="orders_one_successor_per_previous",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(action="NEW") | models.Q(previous_order__isnull=False),
                        name="orders_previous_order_required",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(auto_expire_date__isnull=True)
                        | models.Q(auto_expire_date__gt=models.F("start_date")),
                        name="orders_auto_expire_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderObservation",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("value_text", models.TextField(blank=True, default="")),
                (
                    "value_numeric",
                    models.DecimalField(blank=True, decimal_places=6, max_digits=18, null=True),
                ),
                ("obs_datetime", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "concept",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="django_orders.concept",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="observations",
                        to="django_orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-obs_datetime"],
            },
        ),
    ]
