"""GraveShift command line tools."""
