"""Provision and tear down an intentionally insecure AWS training environment."""
