# cakeshop/services/sentiment_service.py
"""
ClassifySentiment(text) -> {label, score}.

The lexicon classifier counts whole-word hits from the positive and negative lists,
shifts half a point from positive to negative for every negation it finds,
and normalises (positive - negative) / word_count into [-1, 1].
"""
import re
from dataclasses import dataclass

POSITIVE_WORDS = (
    "excellent", "amazing", "wonderful", "fantastic", "great", "good", "love", "loved",
    "perfect", "delicious", "tasty", "awesome", "outstanding", "brilliant", "superb",
    "satisfied", "happy", "pleased", "delighted", "impressed", "beautiful", "fresh",
    "quality", "best", "recommend", "highly", "exceeded", "surpassed", "exceeded expectations",
    "thank you", "thanks", "appreciate", "grateful", "flawless", "amazing taste",
    "soft", "moist", "creamy", "sweet", "yummy", "scrumptious", "delectable", "mouthwatering",
)

NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "horrible", "disappointed", "disappointing", "poor",
    "worst", "hate", "hated", "disgusting", "inedible", "stale", "dry", "burnt",
    "overcooked", "undercooked", "tasteless", "bland", "soggy", "hard", "not good",
    "waste", "money", "regret", "complaint", "issue", "problem", "wrong", "incorrect",
    "late", "delayed", "damaged", "broken", "spoiled", "rotten", "moldy", "expired",
)

NEGATIONS = ("not", "no", "never", "none", "cannot", "can't", "won't", "don't", "didn't")

LABEL_THRESHOLD = 0.1


@dataclass(frozen=True)
class Sentiment:
    label: str
    score: float

    def as_api(self):
        return {"label": self.label, "score": self.score}


NEUTRAL = Sentiment("neutral", 0.0)


class SentimentClassifier:
    def classify(self, text: str) -> Sentiment:
        raise NotImplementedError


def _count(words, text):
    return sum(len(re.findall(rf"\b{re.escape(w)}\b", text)) for w in words)


class LexiconSentimentClassifier(SentimentClassifier):

    def classify(self, text: str) -> Sentiment:
        if not text or not text.strip():
            return NEUTRAL
        return self._score(text.lower())

    def _score(self, text):
        word_count = max(len(text.split()), 1)
        positive = _count(POSITIVE_WORDS, text)
        negative = _count(NEGATIVE_WORDS, text)

        for negation in NEGATIONS:
            if re.search(rf"\b{re.escape(negation)}\s+\w+", text):
                positive -= 0.5
                negative += 0.5

        score = (positive - negative) / word_count
        score = max(-1.0, min(1.0, score * 2))

        label = "neutral"
        if score > LABEL_THRESHOLD:
            label = "positive"
        elif score < -LABEL_THRESHOLD:
            label = "negative"
        return Sentiment(label, round(score, 2))
