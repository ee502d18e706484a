"""HopeCare login guard service: lockout policy and session checks for the donor portal."""
