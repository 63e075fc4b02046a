# State constants for both conversation flows

ONBOARDING = "onboarding"
CHECKIN = "checkin"

# ---------------------------------------------------------------------------
# Onboarding flow
# ---------------------------------------------------------------------------

# Record created, welcome sent; round 1 questions follow on a short delay
REGISTERED = "REGISTERED"

# Awaiting: 5 comma-separated numbers (age, weight, target loss, alcohol days, exercise days)
ROUND_1_SENT = "ROUND_1_SENT"

# Round 1 stored; awaiting Y/N to continue with round 2
ROUND_1_COMPLETE = "ROUND_1_COMPLETE"

# Awaiting: 4 numbers and 1 Y/N
ROUND_2_SENT = "ROUND_2_SENT"

# Round 2 stored; awaiting Y/N to continue with round 3
ROUND_2_COMPLETE = "ROUND_2_COMPLETE"

# Awaiting: 14 Y/N health answers
ROUND_3_SENT = "ROUND_3_SENT"

# Terminal. Also reached through STOP.
ONBOARDING_COMPLETE = "ONBOARDING_COMPLETE"

ONBOARDING_STATES = (
    REGISTERED,
    ROUND_1_SENT,
    ROUND_1_COMPLETE,
    ROUND_2_SENT,
    ROUND_2_COMPLETE,
    ROUND_3_SENT,
    ONBOARDING_COMPLETE,
)

# ---------------------------------------------------------------------------
# Weekly check-in flow (ROUND_1_SENT / ROUND_1_COMPLETE / ROUND_2_SENT are shared names)
# ---------------------------------------------------------------------------

# Opening prompt sent; awaiting Y/N
INITIAL_SENT = "INITIAL_SENT"

# Declined or quiet after the opening prompt; a late Y still starts round 1
INITIAL_NO_RESPONSE = "INITIAL_NO_RESPONSE"

# Transition prompt sent after round 1; awaiting Y/N for round 2
TRANSITION_SENT = "TRANSITION_SENT"

# Declined or quiet after the transition prompt; a late Y still starts round 2
TRANSITION_NO_RESPONSE = "TRANSITION_NO_RESPONSE"

# Terminal: round 2 answered, or second phase abandoned (still counts as engaged)
COMPLETED = "COMPLETED"

# Terminal: first phase abandoned
ABANDONED = "ABANDONED"

CHECKIN_STATES = (
    INITIAL_SENT,
    INITIAL_NO_RESPONSE,
    ROUND_1_SENT,
    ROUND_1_COMPLETE,
    TRANSITION_SENT,
    TRANSITION_NO_RESPONSE,
    ROUND_2_SENT,
    COMPLETED,
    ABANDONED,
)
