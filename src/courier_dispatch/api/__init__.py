"""Administrative HTTP surface."""
