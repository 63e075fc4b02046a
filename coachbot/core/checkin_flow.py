"""Weekly check-in: opening prompt, two rounds, and time-based reminders/closing."""
from coachbot.core import state_machine as sm
from coachbot.core.engine import Advance, ChoiceStep, FlowDefinition, RoundStep
from coachbot.core.parser import ChoiceField, NumberField, RoundSchema

ROUND_1 = RoundSchema(
    name="round1",
    fields=(
        NumberField("scaleUpdate", 1, 999),
        NumberField("sweatSessions", 0, 7),
        NumberField("cardioMinutes", 0, 300),
        NumberField("walkInOut", 0, 300),
        ChoiceField("foodGame"),
    ),
)

ROUND_2 = RoundSchema(
    name="round2",
    fields=(
        NumberField("h2oHero", 0, 10),
        NumberField("sleepScore", 0, 5),
        ChoiceField("confidenceBoost"),
        NumberField("stressCheck", 0, 5),
        NumberField("liquidIntake", 0, 8),
    ),
)

MESSAGES = {
    "INITIAL": (
        "🗓️ Friday Check-in Time! Your AI coach needs the weekly intel to keep you on the path to "
        "legendary status. 2 minutes, tops - shorter than your bathroom break! Ready? Reply (Y/N)"
    ),
    "FIRST_NO": (
        "No worries, we get it - life happens! We'll ping you in a few hours. "
        "Your progress won't judge you... much 😏"
    ),
    "ROUND_1": (
        "Round 1: Progress Check\n"
        "1. Scale update - What's your current weight? (No hiding from the truth, bro!)\n"
        "2. Sweat sessions - How many days did you exercise this week? (0-7)\n"
        "3. Cardio minutes - Average daily cardio minutes? (Every step counts!)\n"
        "4. Walk it out - Average daily walking minutes? (Chasing kids counts!)\n"
        "5. Food game - Did you make any food changes this week? (Y/N)\n"
        "Please respond with all 5 answers separated by commas.\n"
        "*Example:* 23, 7, 10, 5, Y"
    ),
    "ROUND_1_RETRY": "⚠️ Please check the format and try again. Example: 175, 4, 30, 45, Y",
    "ROUND_1_LOGGED": "✅ Round 1 logged. Nice work!",
    "LAST_NOTE": "Using last week's data - we know you're still crushing it!",
    "TRANSITION": (
        "Solid work! 💪 Got bandwidth for 5 more questions? "
        "These help fine-tune your program like a sports car. Reply (Y/N)"
    ),
    "SECOND_NO": "Totally cool! We'll catch you later. Even Superman needs a break 🦸‍♂️",
    "ROUND_2": (
        "Round 2: Lifestyle check\n"
        "1. H2O hero - Average glasses of water daily this week? (0-10) Your body will thank you!\n"
        "2. Sleep score - How was your sleep game? (5 = hibernating bear, 0 = vampire schedule)\n"
        "3. Confidence boost - Notice any improvements in your bedroom confidence? (Y/N)\n"
        "4. Stress check - Weekly stress level? (5 = Mount Vesuvius, 0 = beach vacation vibes)\n"
        "5. Liquid intake - Average alcoholic drinks per day? (0-8) Honesty is the best policy!\n"
        "Please respond with all 5 answers separated by commas.\n"
        "*Example:* 8, 3, Y, 2, 1"
    ),
    "ROUND_2_RETRY": "⚠️ Please check the format and try again. Example: 8, 3, Y, 2, 1",
    "COMPLETION": (
        "🏆 Check-in complete! Your Dadbod AI coach is analyzing the data and plotting your next "
        "level-up. Keep being awesome - your future self is already thanking you!"
    ),
    "HELP": (
        "*Weekly check-in help*\n"
        "📋 *Y/N prompts:* reply Y to start, N to skip for now\n"
        "📋 *Round 1:* weight, exercise days (0-7), cardio min (0-300), walking min (0-300), food changes (Y/N)\n"
        "📋 *Round 2:* water (0-10), sleep (0-5), confidence (Y/N), stress (0-5), drinks (0-8)\n"
        "*Example formats:*\n"
        "• Round 1: 175, 4, 30, 45, Y\n"
        "• Round 2: 8, 3, Y, 2, 1"
    ),
    "UNEXPECTED": "I'm not sure what you're responding to. Reply *HELP* for assistance. 🤔",
    "STOP": "Got it - no more check-ins. Contact support if you want to restart. 👋",
}

_TRANSITION_CHOICE = ChoiceStep(
    yes=Advance(sm.ROUND_2_SENT, MESSAGES["ROUND_2"]),
    no=Advance(sm.TRANSITION_NO_RESPONSE, MESSAGES["SECOND_NO"], reminder_count=1),
)

_INITIAL_CHOICE = ChoiceStep(
    yes=Advance(sm.ROUND_1_SENT, MESSAGES["ROUND_1"]),
    no=Advance(sm.INITIAL_NO_RESPONSE, MESSAGES["FIRST_NO"], reminder_count=1),
)

_FIRST_REMINDER = Advance(sm.INITIAL_NO_RESPONSE, MESSAGES["FIRST_NO"])
_SECOND_REMINDER = Advance(sm.TRANSITION_NO_RESPONSE, MESSAGES["SECOND_NO"])

CHECKIN_FLOW = FlowDefinition(
    name=sm.CHECKIN,
    initial_state=sm.INITIAL_SENT,
    opening_message=MESSAGES["INITIAL"],
    steps={
        sm.INITIAL_SENT: _INITIAL_CHOICE,
        sm.INITIAL_NO_RESPONSE: _INITIAL_CHOICE,
        sm.ROUND_1_SENT: RoundStep(
            schema=ROUND_1,
            # Round complete auto-advances straight into the transition prompt
            on_valid=Advance(
                sm.ROUND_1_COMPLETE,
                MESSAGES["ROUND_1_LOGGED"],
                then=Advance(sm.TRANSITION_SENT, MESSAGES["TRANSITION"]),
            ),
            retry_message=MESSAGES["ROUND_1_RETRY"],
        ),
        sm.ROUND_1_COMPLETE: _TRANSITION_CHOICE,
        sm.TRANSITION_SENT: _TRANSITION_CHOICE,
        sm.TRANSITION_NO_RESPONSE: _TRANSITION_CHOICE,
        sm.ROUND_2_SENT: RoundStep(
            schema=ROUND_2,
            on_valid=Advance(sm.COMPLETED, MESSAGES["COMPLETION"]),
            retry_message=MESSAGES["ROUND_2_RETRY"],
        ),
    },
    terminal_states=frozenset({sm.COMPLETED, sm.ABANDONED}),
    help_message=MESSAGES["HELP"],
    unexpected_message=MESSAGES["UNEXPECTED"],
    stop_state=sm.ABANDONED,
    stop_message=MESSAGES["STOP"],
    reminders={
        sm.INITIAL_SENT: _FIRST_REMINDER,
        sm.INITIAL_NO_RESPONSE: _FIRST_REMINDER,
        sm.TRANSITION_SENT: _SECOND_REMINDER,
        sm.TRANSITION_NO_RESPONSE: _SECOND_REMINDER,
    },
    closings={
        sm.INITIAL_NO_RESPONSE: Advance(sm.ABANDONED, MESSAGES["LAST_NOTE"]),
        sm.TRANSITION_NO_RESPONSE: Advance(sm.COMPLETED, MESSAGES["COMPLETION"]),
    },
    # Round 1 answered counts as an engaged week; anything earlier is abandoned
    expirations={
        sm.INITIAL_SENT: sm.ABANDONED,
        sm.INITIAL_NO_RESPONSE: sm.ABANDONED,
        sm.ROUND_1_SENT: sm.ABANDONED,
        sm.ROUND_1_COMPLETE: sm.COMPLETED,
        sm.TRANSITION_SENT: sm.COMPLETED,
        sm.TRANSITION_NO_RESPONSE: sm.COMPLETED,
        sm.ROUND_2_SENT: sm.COMPLETED,
    },
)
