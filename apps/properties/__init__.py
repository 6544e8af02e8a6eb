"""Properties app package.

Listings and the category catalogue: models, the custom-field schema,
the listing filter engine, category/listing services and media storage.
"""
