"""Generic hybrid search engine.

- ``engine``: ``HybridSearchEngine`` parameterized by a codec.
- ``identity``: deterministic document ids from natural keys.
- ``tokenize``: query keyword extraction.
- ``scoring``: weighted fusion of semantic and keyword hits.
- ``filters``: reusable record predicates.
- ``types``: configuration and result types.
"""
