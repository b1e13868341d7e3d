"""Redis Lua scripts for the shared counter store.

Each script runs atomically on the Redis server, so the check and the
increment can never interleave with another client's calls for the same key.
"""

# Conditional fixed-window increment.
# The counter is only incremented while it is below the limit, so a caller
# that has to wait never spends budget. The window TTL is attached when the
# key is created; a counter found without a TTL gets the window restored so
# it cannot block callers forever.
# Returns {admitted (0|1), count, pttl_ms}
CONSUME_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_ms = tonumber(ARGV[2])

    local current = tonumber(redis.call('GET', key) or '0')
    local ttl = redis.call('PTTL', key)

    if ttl == -1 then
        redis.call('PEXPIRE', key, window_ms)
        ttl = window_ms
    end

    if current >= limit then
        return {0, current, ttl}
    end

    local count = redis.call('INCR', key)
    if count == 1 then
        redis.call('PEXPIRE', key, window_ms)
        ttl = window_ms
    end
    return {1, count, ttl}
"""

# Unconditional increment with an optional TTL.
# ARGV[1] is the TTL in milliseconds (0 = no TTL); ARGV[2] == '1' refreshes
# the TTL on every call instead of only when the key is created.
INCREMENT_SCRIPT = """
    local key = KEYS[1]
    local ttl_ms = tonumber(ARGV[1])
    local refresh = ARGV[2] == '1'

    local count = redis.call('INCR', key)
    if ttl_ms > 0 then
        if count == 1 or refresh or redis.call('PTTL', key) == -1 then
            redis.call('PEXPIRE', key, ttl_ms)
        end
    end
    return count
"""

# Decrement that never goes below zero and never creates the key.
DECREMENT_SCRIPT = """
    local key = KEYS[1]
    local current = tonumber(redis.call('GET', key) or '0')
    if current <= 0 then
        return 0
    end
    return redis.call('DECR', key)
"""

# Concurrency slots live in a sorted set: member = holder token,
# score = lease deadline in server milliseconds (Redis TIME).
# Stale holders are pruned first; a rejected caller writes nothing else, so
# waiting never extends anyone's lease. The key expires with its newest lease.
# Returns 1 if the holder was admitted, 0 if every slot is taken.
ACQUIRE_SLOT_SCRIPT = """
    local key = KEYS[1]
    local holder = ARGV[1]
    local limit = tonumber(ARGV[2])
    local lease_ms = tonumber(ARGV[3])

    local t = redis.call('TIME')
    local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)

    redis.call('ZREMRANGEBYSCORE', key, '-inf', now)
    if redis.call('ZCARD', key) >= limit then
        return 0
    end

    redis.call('ZADD', key, now + lease_ms, holder)
    redis.call('PEXPIRE', key, lease_ms)
    return 1
"""

# Remove one holder's token. Stale holders are pruned first, so the reply
# is 0 when the caller's own lease had already run out.
RELEASE_SLOT_SCRIPT = """
    local key = KEYS[1]
    local holder = ARGV[1]

    local t = redis.call('TIME')
    local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)

    redis.call('ZREMRANGEBYSCORE', key, '-inf', now)
    return redis.call('ZREM', key, holder)
"""

# Number of holders whose lease has not run out.
COUNT_SLOTS_SCRIPT = """
    local key = KEYS[1]
    local t = redis.call('TIME')
    local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
    return redis.call('ZCOUNT', key, '(' .. now, '+inf')
"""
