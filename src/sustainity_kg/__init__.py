"""
Sustainity Knowledge Base Pipeline

A batch pipeline that condenses a Wikidata-style entity dump into a versioned
knowledge base of organizations, products and certifications. Entities are
classified, turned into domain records, merged by canonical identity, linked
through two-pass relation resolution, scored and published into an LMDB store
that a serving layer reads from.
"""

__version__ = "0.1.0"
__author__ = "Sustainity"
