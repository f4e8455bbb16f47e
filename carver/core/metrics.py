from prometheus_client import Counter


matrices_created_total = Counter(
    "carver_matrices_created_total",
    "Total CARVER matrices created",
)

matrices_updated_total = Counter(
    "carver_matrices_updated_total",
    "Total CARVER matrix updates applied",
)

matrices_deleted_total = Counter(
    "carver_matrices_deleted_total",
    "Total CARVER matrices deleted with their items",
)

matrix_searches_total = Counter(
    "carver_matrix_searches_total",
    "Total matrix search requests",
)

score_records_applied_total = Counter(
    "carver_score_records_applied_total",
    "Total item score records merged and persisted",
)

score_batches_failed_total = Counter(
    "carver_score_batches_failed_total",
    "Total score batches stopped by a failing record",
)
