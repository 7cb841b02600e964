from tools.ledger import history  # noqa: F401
from tools.reports import period_summary  # noqa: F401
