from .settings import settings, get_bool_env, get_int_env
