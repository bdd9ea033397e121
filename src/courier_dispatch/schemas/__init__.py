"""Message and admin API schemas."""
