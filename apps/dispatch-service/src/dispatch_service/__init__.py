"""GigHub emergency dispatch service."""
