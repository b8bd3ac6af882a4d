"""GraveShift HTTP API."""
