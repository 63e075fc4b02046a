"""Onboarding: up to three rounds of questions for a newly registered subject."""
from coachbot.core import state_machine as sm
from coachbot.core.engine import Advance, ChoiceStep, FlowDefinition, RoundStep
from coachbot.core.parser import ChoiceField, NumberField, RoundSchema, yes_no_fields

ROUND_1 = RoundSchema(
    name="round1",
    fields=(
        NumberField("age", 1, 119),
        NumberField("weight", 1, 999),
        NumberField("targetWeightLoss", 1, 499),
        NumberField("alcoholDaysPerWeek", 0, 7),
        NumberField("exerciseDaysPerWeek", 0, 7),
    ),
)

ROUND_2 = RoundSchema(
    name="round2",
    fields=(
        NumberField("waterGlasses", 0, 10),
        NumberField("sleepQuality", 0, 5),
        ChoiceField("improveIntimacy"),
        NumberField("stressLevel", 0, 5),
        NumberField("dailyDrinks", 0, 8),
    ),
)

ROUND_3 = RoundSchema(
    name="round3",
    fields=yes_no_fields(
        "highBloodPressure",
        "type2Diabetes",
        "cancer",
        "osteoporosis",
        "heartDisease",
        "smoking",
        "neckPain",
        "hearingLoss",
        "highCholesterol",
        "anxiety",
        "backPain",
        "type1Diabetes",
        "depression",
        "osteoarthritis",
    ),
)

MESSAGES = {
    "WELCOME": (
        "🎉 Welcome to the DadBod squad! Time to turn that \"I'll start Monday\" energy into actual "
        "results. Let's kick things off with 5 quick questions - no math required, we promise!"
    ),
    "ROUND_1": (
        "*Round 1: Basic Info* 💪\n"
        "1. *Age check* - How old are you, champ? Just need the number, no fake IDs here 😄\n"
        "2. *Starting point* - What's your current weight? (No judgment zone - we've all been there)\n"
        "3. *The goal* - How many pounds are we looking to kiss goodbye?\n"
        "4. *Liquid courage meter* - How many days per week do you drink alcohol? (0-7)\n"
        "5. *Sweat equity* - How many days per week do you currently exercise? (0-7)\n"
        "Please respond with all 5 answers separated by commas.\n"
        "*Example:* 35, 180, 20, 2, 3"
    ),
    "TRANSITION_ROUND_2": (
        "Great job! 💪 Ready for round 2? These questions help us fine-tune your plan.\n"
        "Reply *Y* to continue or *N* to finish setup."
    ),
    "ROUND_2": (
        "*Round 2: Lifestyle Details* 🎯\n"
        "1. *Hydration station* - How many 8oz glasses of water do you drink daily? (0-10) "
        "Pro tip: Beer doesn't count 🍺\n"
        "2. *Sleep game* - How's your sleep quality? (5 = sleeping like a baby, 0 = dad with a newborn)\n"
        "3. *Bedroom benefits* - Want to improve your game between the sheets? (Y/N)\n"
        "4. *Stress meter* - What's your weekly stress level? (5 = ready to flip tables, 0 = zen master)\n"
        "5. *Daily drinks* - On average, how many alcoholic drinks per day? (0-8)\n"
        "Please respond with all 5 answers separated by commas.\n"
        "*Example:* 6, 3, Y, 2, 1"
    ),
    "TRANSITION_ROUND_3": (
        "Almost there! 🏁 One final round of quick Y/N health questions.\n"
        "Reply *Y* to continue or *N* to finish setup."
    ),
    "ROUND_3": (
        "*Final Round: Health Check* 🏥\n"
        "Quick Y/N questions. Think of it like a health quiz, but way less boring than WebMD:\n"
        "1. High Blood Pressure (Y/N)\n"
        "2. Type 2 Diabetes (Y/N)\n"
        "3. Cancer (Y/N)\n"
        "4. Osteoporosis (Y/N)\n"
        "5. Heart Disease (Y/N)\n"
        "6. Smoking (Y/N)\n"
        "7. Neck pain (Y/N)\n"
        "8. Hearing loss (Y/N)\n"
        "9. High Cholesterol (Y/N)\n"
        "10. Anxiety (Y/N)\n"
        "11. Back pain (Y/N)\n"
        "12. Type 1 Diabetes (Y/N)\n"
        "13. Depression (Y/N)\n"
        "14. Osteoarthritis (Y/N)\n"
        "Please respond with 14 Y/N answers separated by commas.\n"
        "*Example:* N,N,N,Y,N,N,Y,N,N,Y,Y,N,N,N"
    ),
    "COMPLETION": (
        "🎯 *You're officially locked and loaded!*\n"
        "Your AI coach is building your personalized plan. Time to show that dad bod who's boss! 💪\n"
        "We'll be in touch soon with your custom fitness and nutrition strategy. Get ready to transform! 🔥"
    ),
    "ERROR": (
        "⚠️ Oops! That doesn't look right. Please check the format and try again.\n"
        "Reply *HELP* if you need assistance."
    ),
    "HELP": (
        "*Need help?* Here's what I'm expecting:\n"
        "📋 *Round 1:* 5 numbers separated by commas\n"
        "📋 *Round 2:* 4 numbers and 1 Y/N, separated by commas\n"
        "📋 *Round 3:* 14 Y/N answers separated by commas\n"
        "📋 *Transitions:* Just Y or N\n"
        "*Example formats:*\n"
        "• Round 1: 35, 180, 20, 2, 3\n"
        "• Round 2: 6, 3, Y, 2, 1\n"
        "• Round 3: N,N,N,Y,N,N,Y,N,N,Y,Y,N,N,N"
    ),
    "UNEXPECTED": "I'm not sure what you're responding to. Reply *HELP* for assistance. 🤔",
    "STOP": "Thanks for using DadBod! You've been unsubscribed. Contact support if you want to restart. 👋",
}

_COMPLETE = Advance(sm.ONBOARDING_COMPLETE, MESSAGES["COMPLETION"])

ONBOARDING_FLOW = FlowDefinition(
    name=sm.ONBOARDING,
    initial_state=sm.REGISTERED,
    opening_message=MESSAGES["WELCOME"],
    steps={
        sm.ROUND_1_SENT: RoundStep(
            schema=ROUND_1,
            on_valid=Advance(sm.ROUND_1_COMPLETE, MESSAGES["TRANSITION_ROUND_2"]),
            retry_message=MESSAGES["ERROR"],
        ),
        sm.ROUND_1_COMPLETE: ChoiceStep(
            yes=Advance(sm.ROUND_2_SENT, MESSAGES["ROUND_2"]),
            no=_COMPLETE,
        ),
        sm.ROUND_2_SENT: RoundStep(
            schema=ROUND_2,
            on_valid=Advance(sm.ROUND_2_COMPLETE, MESSAGES["TRANSITION_ROUND_3"]),
            retry_message=MESSAGES["ERROR"],
        ),
        sm.ROUND_2_COMPLETE: ChoiceStep(
            yes=Advance(sm.ROUND_3_SENT, MESSAGES["ROUND_3"]),
            no=_COMPLETE,
        ),
        sm.ROUND_3_SENT: RoundStep(
            schema=ROUND_3,
            on_valid=_COMPLETE,
            retry_message=MESSAGES["ERROR"],
        ),
    },
    terminal_states=frozenset({sm.ONBOARDING_COMPLETE}),
    help_message=MESSAGES["HELP"],
    unexpected_message=MESSAGES["UNEXPECTED"],
    stop_state=sm.ONBOARDING_COMPLETE,
    stop_message=MESSAGES["STOP"],
    kickoffs={sm.REGISTERED: Advance(sm.ROUND_1_SENT, MESSAGES["ROUND_1"])},
)
