from auth_watchdog.backend.supabase_client import SupabaseClient

__all__ = ["SupabaseClient"]
