# Services Module
#
# Submodules are imported directly (ecofinds.services.money,
# ecofinds.services.repositories, ...) so that the cart can use the money
# helpers without pulling in the Supabase client.
