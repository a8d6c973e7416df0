from __future__ import annotations

__version__ = "0.1.0"

from .css_synthesizer import synthesize_css
from .dom import Context, parse_document, parse_fragment
from .errors import BridgeTimeout, CaptureError, LocatorSynthError, SettingsError, TargetNotFound
from .frameworks import detect_framework_locators, detect_frontend_framework, most_specific
from .locator_generator import generate_locator_candidates
from .models import BestLocator, FrameBoundary, LocatorCandidate, MatchResult, SynthesisResult, SynthesizedLocator
from .ranking import action_intent, order_candidates, rank_candidates
from .selector_rules import describe_volatility, is_volatile
from .session import InspectionSession, SynthesisBridge
from .settings import SynthesisSettings, load_settings, save_settings
from .text_stabilizer import stabilize_text
from .validation import evaluate_locator, is_unique, ordinal_of
from .xpath_synthesizer import synthesize_xpath
