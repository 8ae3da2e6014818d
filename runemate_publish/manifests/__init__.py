"""Bot manifests: schema, declarations, codecs, rules and discovery."""
