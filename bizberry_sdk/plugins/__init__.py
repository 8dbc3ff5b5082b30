"""Resource helpers. Each function takes the SDK as its first argument."""
