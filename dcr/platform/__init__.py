"""Platform adapters: processes and files."""
