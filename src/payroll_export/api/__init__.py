"""HTTP API for payroll exports and wage progressions."""
