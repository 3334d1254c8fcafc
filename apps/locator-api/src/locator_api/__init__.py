"""Location resolution and matching API."""
