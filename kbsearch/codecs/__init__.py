"""Record types and the codecs that bind them to the search engine.

- ``base``: the ``Codec`` contract and shared token filters.
- ``capability``: resource capabilities, search filters, kind lookup.
- ``pattern``: organizational deployment patterns.
- ``policy``: policy intents and their deployed policy references.
"""
