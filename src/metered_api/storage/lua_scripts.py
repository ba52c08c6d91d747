"""Redis Lua scripts for atomic operations."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Take one credit if enough remain
# Keys: [user_key]
# Args: [expected_min_credits]
# Returns: 1 charged, 0 insufficient, -1 user missing
CONDITIONAL_DECREMENT_SCRIPT = """
local key = KEYS[1]
local min_credits = tonumber(ARGV[1])

if redis.call('EXISTS', key) == 0 then
    return -1
end

local credits = tonumber(redis.call('HGET', key, 'credits'))
if credits == nil or credits < min_credits then
    return 0
end

redis.call('HINCRBY', key, 'credits', -1)
redis.call('HINCRBY', key, 'credits_used', 1)
return 1
"""

# One-time recharge
# Keys: [user_key]
# Args: [amount]
# Returns: 1 recharged, 0 already recharged, -1 user missing
CONDITIONAL_RECHARGE_SCRIPT = """
local key = KEYS[1]
local amount = tonumber(ARGV[1])

if redis.call('EXISTS', key) == 0 then
    return -1
end

if redis.call('HGET', key, 'recharged') == '1' then
    return 0
end

redis.call('HINCRBY', key, 'credits', amount)
redis.call('HSET', key, 'recharged', '1')
return 1
"""

# Create a user with unique API key and external identity
# Keys: [user_key, api_key_index, external_id_index]
# Args: [user_id, field1, value1, field2, value2, ...]
# Returns: 1 created, 0 api key or identity already taken
CREATE_USER_SCRIPT = """
if redis.call('EXISTS', KEYS[2]) == 1 or redis.call('EXISTS', KEYS[3]) == 1 then
    return 0
end

redis.call('SET', KEYS[2], ARGV[1])
redis.call('SET', KEYS[3], ARGV[1])
for i = 2, #ARGV, 2 do
    redis.call('HSET', KEYS[1], ARGV[i], ARGV[i + 1])
end
return 1
"""

# Update an item only if owned by the caller
# Keys: [item_key]
# Args: [user_id, field1, value1, ...]
# Returns: 1 updated, 0 missing or not owned
ITEM_UPDATE_OWNED_SCRIPT = """
local key = KEYS[1]

if redis.call('HGET', key, 'user_id') ~= ARGV[1] then
    return 0
end

for i = 2, #ARGV, 2 do
    redis.call('HSET', key, ARGV[i], ARGV[i + 1])
end
return 1
"""

# Delete an item only if owned by the caller
# Keys: [item_key, user_items_key]
# Args: [user_id, item_id]
# Returns: 1 deleted, 0 missing or not owned
ITEM_DELETE_OWNED_SCRIPT = """
if redis.call('HGET', KEYS[1], 'user_id') ~= ARGV[1] then
    return 0
end

redis.call('DEL', KEYS[1])
redis.call('ZREM', KEYS[2], ARGV[2])
return 1
"""

SCRIPTS: dict[str, str] = {
    "conditional_decrement": CONDITIONAL_DECREMENT_SCRIPT,
    "conditional_recharge": CONDITIONAL_RECHARGE_SCRIPT,
    "create_user": CREATE_USER_SCRIPT,
    "item_update_owned": ITEM_UPDATE_OWNED_SCRIPT,
    "item_delete_owned": ITEM_DELETE_OWNED_SCRIPT,
}


class LuaScripts:
    """Manager for Lua script SHA hashes."""

    def __init__(self) -> None:
        self.shas: dict[str, str] = {}
        self._loaded = False

    async def load(self, redis_client: "Redis") -> None:
        """Load all scripts into Redis and store SHA hashes."""
        if self._loaded:
            return

        for name, script in SCRIPTS.items():
            self.shas[name] = await redis_client.script_load(script)
        self._loaded = True

    def sha(self, name: str) -> str | None:
        return self.shas.get(name)

    def reset(self) -> None:
        """Reset loaded state (for testing)."""
        self._loaded = False
        self.shas.clear()


# Global instance
lua_scripts = LuaScripts()
