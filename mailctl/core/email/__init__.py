"""Email protocols (IMAP/SMTP), parsing and the service layer."""
