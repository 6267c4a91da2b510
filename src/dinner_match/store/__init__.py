"""
Store layer (DinnerMatch)

Adapters for the external collaborators the core consumes:
  - Recipe Store: list_recipes(), insert_recipe()
  - Vote Store:   list_votes(day, user_id=None), insert_vote()
  - Vote feed:    async iterator over newly inserted swipes rows

Supabase adapters are used when SUPABASE_URL / SUPABASE_ANON_KEY are set;
the in-memory ones back local mode and the tests.
"""
