"""Source-control and hosting integrations."""
