"""Business metrics for the limits matrix service."""

from opentelemetry import metrics

# Instruments are no-ops until telemetry installs a meter provider
meter = metrics.get_meter(__name__)

# Upstream policy service
upstream_request_duration = meter.create_histogram(
    name="policy_service_request_duration_seconds",
    description="Duration of requests to the policy service in seconds",
    unit="s",
)

upstream_request_errors = meter.create_counter(
    name="policy_service_request_errors_total",
    description="Total number of failed requests to the policy service",
)

# Projections
matrix_projections_total = meter.create_counter(
    name="matrix_projections_total",
    description="Total number of matrix views built",
)

rule_projections_total = meter.create_counter(
    name="rule_projections_total",
    description="Total number of per-rule-type views built",
)

combinations_projected = meter.create_histogram(
    name="combinations_projected",
    description="Number of combinations in a projected view",
)

csv_exports_total = meter.create_counter(
    name="matrix_csv_exports_total",
    description="Total number of matrix CSV exports",
)

# Links
links_created_total = meter.create_counter(
    name="linked_combinations_created_total",
    description="Total number of combination links created",
)

links_rejected_total = meter.create_counter(
    name="linked_combinations_rejected_total",
    description="Total number of combination links rejected",
)
