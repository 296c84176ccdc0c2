"""Service Guardian.

Single-node watchdog for operating-system services that demonstrates:
 - multi-stage health checks (supervisor state, listening port, application probe)
 - self-healing (dependency-aware restarts with exponential backoff)
 - uptime / availability accounting
 - real-time log scanning for error signatures

All state is kept in memory; restarting the guardian resets the counters.
"""
