from django import forms

from .models import LIST_SIZE

MAX_LOOKUP_IDS = 20


class PositionLookupForm(forms.Form):
    """Form for looking up several items at once."""

    external_ids = forms.CharField(
        help_text=f"Enter one or more external ids, separated by commas (max {MAX_LOOKUP_IDS}).",
    )

    def clean_external_ids(self):
        """Parse comma-separated ids, dropping blanks and duplicates."""
        raw = self.cleaned_data.get("external_ids", "")
        ids = []
        for external_id in raw.split(","):
            external_id = external_id.strip()
            if external_id and external_id not in ids:
                ids.append(external_id)
        if not ids:
            raise forms.ValidationError("No external ids provided.")
        return ids[:MAX_LOOKUP_IDS]


class ZoneRangeForm(forms.Form):
    """Contiguous rank range of the competitive zone (inclusive)."""

    start = forms.IntegerField(required=False, min_value=1)
    end = forms.IntegerField(required=False, min_value=1)

    def clean(self):
        cleaned = super().clean()
        start = cleaned.get("start") or LIST_SIZE + 1
        end = cleaned.get("end") or start + LIST_SIZE - 1
        if end < start:
            raise forms.ValidationError("End must not be before start.")
        cleaned["start"] = start
        cleaned["end"] = end
        return cleaned
