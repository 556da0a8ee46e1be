"""Day thresholds for invoice display severity.

Counted in whole days since the invoice was received.
"""
ALERT_AFTER_DAYS = 10
OVERDUE_AFTER_DAYS = 20

# Report periods accepted by the remote report generator (period -> days covered)
REPORT_PERIODS = {
    'weekly': 7,
    'monthly': 30,
}
REPORT_FORMATS = ('excel', 'pdf')
