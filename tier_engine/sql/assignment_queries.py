"""
SQL for the customer assignment workflow.

Tables:
    customer_assignment - one row per customer key; a cleared assignment keeps
                          the row with every assignment column set to NULL.
    snr_handler         - SNR account to handler name mapping maintained
                          through Handler Setup.
"""


# =============================================================================
# customer_assignment
# =============================================================================

SELECT_ASSIGNMENT = """
    SELECT customer_key, line, snr_account, handler, assigned_at, assigned_by
    FROM customer_assignment
    WHERE customer_key = $1
"""

UPSERT_ASSIGNMENT = """
    INSERT INTO customer_assignment (
        customer_key, line, snr_account, handler, assigned_at, assigned_by
    ) VALUES ($1, $2, $3, $4, $5, $6)
    ON CONFLICT (customer_key) DO UPDATE SET
        line = EXCLUDED.line,
        snr_account = EXCLUDED.snr_account,
        handler = EXCLUDED.handler,
        assigned_at = EXCLUDED.assigned_at,
        assigned_by = EXCLUDED.assigned_by
    RETURNING customer_key, line, snr_account, handler, assigned_at, assigned_by
"""

CLEAR_ASSIGNMENT = """
    UPDATE customer_assignment
    SET snr_account = NULL,
        handler = NULL,
        assigned_at = NULL,
        assigned_by = NULL
    WHERE customer_key = $1
"""


# =============================================================================
# snr_handler
# =============================================================================

SELECT_HANDLER_BY_ACCOUNT = """
    SELECT handler
    FROM snr_handler
    WHERE snr_account = $1
    ORDER BY assigned_time DESC NULLS LAST
    LIMIT 1
"""

LIST_HANDLERS = """
    SELECT id, snr_account, line, handler, assigned_by, assigned_time
    FROM snr_handler
    ORDER BY line ASC, snr_account ASC
"""

INSERT_HANDLER = """
    INSERT INTO snr_handler (snr_account, line, handler, assigned_by, assigned_time)
    VALUES ($1, $2, $3, $4, $5)
    RETURNING id, snr_account, line, handler, assigned_by, assigned_time
"""

UPDATE_HANDLER = """
    UPDATE snr_handler
    SET line = $2,
        handler = $3,
        assigned_by = $4,
        assigned_time = $5
    WHERE id = $1
    RETURNING id, snr_account, line, handler, assigned_by, assigned_time
"""

DELETE_HANDLER = """
    DELETE FROM snr_handler
    WHERE id = $1
"""
