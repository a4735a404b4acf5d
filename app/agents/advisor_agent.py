# app/agents/advisor_agent.py
"""
Advisor persona: the remote model's system prompt plus the canned local answers
used for small talk, EMI quotes and whenever the remote model is unavailable.
"""
import re
from typing import Any, Dict, Optional

from app.agents.extraction_agent import SlotField, normalise
from app.agents.intent_agent import is_resilience_request
from app.models.domain_models import Language
from app.models.responses import EmiQuote
from app.services.utils import format_inr, localized

EN, HI, TA = Language.EN, Language.HI, Language.TA

LANGUAGE_INSTRUCTIONS = {
    EN: "Respond in English.",
    HI: "Respond entirely in Hindi (Devanagari script) unless the user asks for English.",
    TA: "Respond entirely in Tamil unless the user asks for English.",
}

PERSONA = """You are NidhiSaarthi AI, a friendly and knowledgeable Indian financial advisor committed to helping users make smart loan and credit decisions.

PERSONALITY & TONE:
- Professional yet approachable, never robotic or corporate
- Empathetic to financial concerns; acknowledge challenges before offering solutions
- Include practical examples relevant to the Indian financial landscape
- Be concise but never dismissive

CORE PRINCIPLES:
1. ACCURACY: Ground every answer in the provided knowledge context or the user's conversation.
2. HONESTY: Never invent interest rates, bank processes or eligibility guarantees. Qualify claims with "typically" or "generally".
3. RELEVANCE: Build on what the user has already shared.
4. SAFETY: Never pretend to be an official bank service. Remind users that lenders make the final decision.

RESPONSE STRUCTURE:
- Lead with the most relevant insight or answer
- Use bullet points or numbered lists for clarity
- Include a practical next step when relevant
- For financial figures, add: "*Subject to final bank verification*\""""

VOICE_MODE = (
    "VOICE MODE: Keep responses short (under 60 words), friendly and natural to read aloud. Prefer simple sentences."
)
TEXT_MODE = "TEXT MODE: Provide well-structured, actionable guidance with examples. Use formatting for clarity."

SUMMARY_FIELDS = (
    (SlotField.MONTHLY_INCOME, "Monthly income", True),
    (SlotField.MONTHLY_EXPENSES, "Monthly expenses", True),
    (SlotField.LOAN_AMOUNT, "Loan amount", True),
    (SlotField.CREDIT_SCORE, "Credit score", False),
    (SlotField.EXISTING_LOANS, "Existing loans", False),
    (SlotField.EXISTING_EMI_AMOUNT, "Existing EMIs", True),
    (SlotField.JOB_TYPE, "Job type", False),
    (SlotField.AGE, "Age", False),
    (SlotField.LOAN_TENURE, "Tenure (months)", False),
    (SlotField.EMERGENCY_SAVINGS, "Emergency savings", True),
    (SlotField.EXISTING_DEBT_MONTHLY, "Monthly debt", True),
    (SlotField.FINANCIAL_GOAL, "Goal", False),
)


def profile_summary(slots: Dict[str, Any]) -> str:
    parts = []
    for field, label, money in SUMMARY_FIELDS:
        if field.value in slots:
            value = slots[field.value]
            parts.append(f"{label}: {format_inr(value) if money else value}")
    return "; ".join(parts)


def build_system_prompt(
    language,
    input_mode: str = "text",
    rag_context: str = "",
    profile: Optional[str] = None,
) -> str:
    sections = [
        PERSONA,
        localized(LANGUAGE_INSTRUCTIONS, language),
        VOICE_MODE if input_mode == "voice" else TEXT_MODE,
    ]
    if profile:
        sections.append(f"KNOWN USER PROFILE:\n{profile}")
    if rag_context:
        sections.append(f"RAG KNOWLEDGE CONTEXT:\n{rag_context}")
    else:
        sections.append("No matching financial knowledge found - ask a clarifying follow-up.")
    return "\n\n".join(sections)


# -----------------------------
# Local answers
# -----------------------------

HELP_TEXT = {
    EN: (
        "👋 I'm **NidhiSaarthi AI**. I can help with:\n\n"
        "✅ Loan eligibility: say \"check eligibility\"\n"
        "💰 EMI calculations: say \"calculate EMI for 5 lakh\"\n"
        "🛡️ Financial resilience: say \"check my financial resilience\"\n"
        "📈 Credit score tips: say \"how to improve credit score\"\n"
        "🏦 Bank comparison: say \"compare banks\"\n"
        "📋 Documents: say \"what documents are needed\"\n\n"
        "What would you like help with?"
    ),
    HI: (
        "👋 मैं **NidhiSaarthi AI** हूं। मैं इनमें मदद कर सकता हूं:\n\n"
        "✅ पात्रता जांच: \"check eligibility\" लिखें\n"
        "💰 EMI गणना: \"5 लाख का EMI निकालें\"\n"
        "🛡️ वित्तीय मजबूती: \"financial resilience check\"\n"
        "📈 क्रेडिट स्कोर: \"क्रेडिट स्कोर कैसे सुधारें\"\n"
        "🏦 बैंक तुलना: \"compare banks\"\n\n"
        "आप किस बारे में जानना चाहेंगे?"
    ),
    TA: (
        "👋 நான் **NidhiSaarthi AI**. இவற்றில் உதவ முடியும்:\n\n"
        "✅ கடன் தகுதி: \"check eligibility\" என்று சொல்லுங்கள்\n"
        "💰 EMI கணக்கீடு: \"calculate EMI for 5 lakh\"\n"
        "🛡️ நிதி தாங்குதிறன்: \"financial resilience check\"\n"
        "📈 கிரெடிட் ஸ்கோர் குறிப்புகள்: \"improve credit score\"\n"
        "🏦 வங்கி ஒப்பீடு: \"compare banks\"\n\n"
        "எதில் உதவ வேண்டும்?"
    ),
}

CREDIT_TIPS = {
    EN: (
        "📈 **Credit Score Tips**\n\n"
        "1. Pay all bills on time (the biggest factor)\n"
        "2. Keep credit utilization below 30%\n"
        "3. Don't close old accounts\n"
        "4. Avoid multiple loan applications in a short span\n"
        "5. Check your CIBIL report for errors\n\n"
        "**Ranges:** 750+ Excellent | 700-749 Good | 650-699 Fair | <650 Poor"
    ),
    HI: (
        "📈 **क्रेडिट स्कोर सुधार**\n\n"
        "1. समय पर बिल भुगतान करें\n"
        "2. क्रेडिट कार्ड का 30% से कम उपयोग करें\n"
        "3. पुराने खाते बंद न करें\n"
        "4. एक साथ कई लोन के लिए आवेदन न करें"
    ),
    TA: (
        "📈 **கிரெடிட் ஸ்கோர் குறிப்புகள்**\n\n"
        "1. எல்லா கட்டணங்களையும் நேரத்தில் செலுத்துங்கள்\n"
        "2. கிரெடிட் பயன்பாட்டை 30%-க்குக் கீழ் வைத்திருங்கள்\n"
        "3. பழைய கணக்குகளை மூட வேண்டாம்\n"
        "4. ஒரே நேரத்தில் பல கடன்களுக்கு விண்ணப்பிக்க வேண்டாம்"
    ),
}

DOCUMENTS = {
    EN: (
        "📋 **Documents for a Loan**\n\n"
        "• PAN Card & Aadhaar\n"
        "• Salary slips (3 months)\n"
        "• Bank statements (6 months)\n"
        "• Address proof\n"
        "• Employment letter\n\n"
        "*Self-employed:* ITR for 2 years, GST returns, business registration"
    ),
    HI: (
        "📋 **लोन दस्तावेज़**\n\n"
        "• पैन और आधार\n"
        "• सैलरी स्लिप (3 महीने)\n"
        "• बैंक स्टेटमेंट (6 महीने)\n"
        "• पता प्रमाण"
    ),
    TA: (
        "📋 **கடனுக்கான ஆவணங்கள்**\n\n"
        "• PAN மற்றும் ஆதார்\n"
        "• சம்பள சீட்டுகள் (3 மாதங்கள்)\n"
        "• வங்கி அறிக்கைகள் (6 மாதங்கள்)\n"
        "• முகவரி சான்று"
    ),
}

BANKS = {
    EN: (
        "🏦 **Popular Lenders for Personal Loans**\n\n"
        "1. **SBI**: typically 9-13%, good for government employees\n"
        "2. **HDFC**: typically 9-11%, fast processing\n"
        "3. **Axis**: typically 9.5-12%, quick approvals\n"
        "4. **ICICI**: typically 10-12.5%, good for existing customers\n\n"
        "*Subject to final bank verification*"
    ),
    HI: (
        "🏦 **प्रमुख बैंक**\n\n"
        "1. SBI: आमतौर पर 9-13%\n"
        "2. HDFC: आमतौर पर 9-11%\n"
        "3. Axis: आमतौर पर 9.5-12%\n"
        "4. ICICI: आमतौर पर 10-12.5%"
    ),
    TA: (
        "🏦 **முக்கிய வங்கிகள்**\n\n"
        "1. SBI: பொதுவாக 9-13%\n"
        "2. HDFC: பொதுவாக 9-11%\n"
        "3. Axis: பொதுவாக 9.5-12%\n"
        "4. ICICI: பொதுவாக 10-12.5%"
    ),
}

EMI_HINT = {
    EN: "💰 To calculate an EMI, tell me the loan amount, for example \"EMI for 5 lakh for 3 years at 10%\".",
    HI: "💰 EMI निकालने के लिए लोन राशि बताएं, जैसे \"5 लाख का EMI 3 साल के लिए 10% पर\"।",
    TA: "💰 EMI கணக்கிட கடன் தொகையைச் சொல்லுங்கள், எ.கா \"EMI for 5 lakh for 3 years at 10%\".",
}

RESILIENCE_HINT = {
    EN: (
        "🛡️ **Building Financial Resilience**\n\n"
        "• Keep 6 months of expenses as an emergency fund\n"
        "• Keep total EMIs under 40% of income\n"
        "• Get health and term insurance if anyone depends on you\n\n"
        "Say \"check my financial resilience\" for a personalised stress test."
    ),
    HI: (
        "🛡️ **वित्तीय मजबूती**\n\n"
        "• 6 महीने के खर्च जितना इमरजेंसी फंड रखें\n"
        "• कुल EMI आय के 40% से कम रखें\n"
        "• आश्रित हों तो स्वास्थ्य और टर्म बीमा लें"
    ),
    TA: (
        "🛡️ **நிதி தாங்குதிறன்**\n\n"
        "• 6 மாத செலவுக்கு சமமான அவசர நிதியை வைத்திருங்கள்\n"
        "• மொத்த EMI-ஐ வருமானத்தின் 40%-க்குக் கீழ் வைத்திருங்கள்\n"
        "• சார்ந்திருப்பவர்கள் இருந்தால் காப்பீடு எடுங்கள்"
    ),
}

APOLOGY = {
    EN: "😔 Sorry, something went wrong on my side. Please try again, your conversation is still here.",
    HI: "😔 क्षमा करें, मेरी तरफ से कुछ गड़बड़ हो गई। कृपया फिर से प्रयास करें, आपकी बातचीत सुरक्षित है।",
    TA: "😔 மன்னிக்கவும், என் பக்கம் ஏதோ தவறு நடந்தது. மீண்டும் முயற்சிக்கவும், உங்கள் உரையாடல் பாதுகாப்பாக உள்ளது.",
}

EXIT_TEXT = {
    EN: "👍 Okay, I've stopped the current check. Your answers so far are saved. Ask me anything!",
    HI: "👍 ठीक है, मैंने मौजूदा जांच रोक दी है। आपके अब तक के उत्तर सहेजे गए हैं। कुछ भी पूछें!",
    TA: "👍 சரி, தற்போதைய சோதனையை நிறுத்திவிட்டேன். உங்கள் பதில்கள் சேமிக்கப்பட்டுள்ளன. எதையும் கேளுங்கள்!",
}

RESET_TEXT = {
    EN: "🔄 Conversation reset. Let's start fresh!",
    HI: "🔄 बातचीत रीसेट हो गई। चलिए नए सिरे से शुरू करें!",
    TA: "🔄 உரையாடல் மீட்டமைக்கப்பட்டது. புதிதாகத் தொடங்குவோம்!",
}

FALLBACKS = (
    (re.compile(r"\b(?:credit|cibil)\b"), CREDIT_TIPS),
    (re.compile(r"\b(?:documents?|papers|kyc)\b"), DOCUMENTS),
    (re.compile(r"\b(?:banks?|lenders?|compare)\b"), BANKS),
    (re.compile(r"\b(?:emis?|installments?)\b"), EMI_HINT),
)


def help_text(language) -> str:
    return localized(HELP_TEXT, language)


def local_fallback(text: str, language) -> str:
    """Keyword-matched canned answer used when the remote model is unavailable."""
    lower = normalise(text)
    for pattern, table in FALLBACKS:
        if pattern.search(lower):
            return localized(table, language)
    if is_resilience_request(lower):
        return localized(RESILIENCE_HINT, language)
    return localized(HELP_TEXT, language)


EMI_LABELS = {
    EN: ("📊 **EMI Calculation**", "Loan", "Rate", "Tenure", "months", "Monthly EMI", "Total Payable",
         "Total Interest", "💡 Keep total EMIs under 40% of your monthly income for comfortable repayment."),
    HI: ("📊 **EMI गणना**", "ऋण", "दर", "अवधि", "महीने", "मासिक EMI", "कुल राशि",
         "कुल ब्याज", "💡 आराम से चुकाने के लिए कुल EMI आय के 40% से कम रखें।"),
    TA: ("📊 **EMI கணக்கீடு**", "கடன்", "வட்டி", "காலம்", "மாதங்கள்", "மாத EMI", "மொத்தம் செலுத்த வேண்டியது",
         "மொத்த வட்டி", "💡 மொத்த EMI-ஐ மாத வருமானத்தின் 40%-க்குக் கீழ் வைத்திருங்கள்."),
}


def emi_answer(quote: EmiQuote, language) -> str:
    title, loan, rate, tenure, months, emi, payable, interest, tip = localized(EMI_LABELS, language)
    share = quote.total_interest / quote.principal * 100 if quote.principal else 0.0
    return (
        f"{title}\n\n"
        f"💰 **{loan}:** {format_inr(quote.principal)} | **{rate}:** {quote.annual_rate:.1f}% | "
        f"**{tenure}:** {quote.tenure_months} {months}\n\n"
        f"💵 **{emi}: {format_inr(quote.emi)}**\n"
        f"• {payable}: {format_inr(quote.total_payable)}\n"
        f"• {interest}: {format_inr(quote.total_interest)} ({share:.1f}%)\n\n"
        f"{tip}"
    )
