"""Request validation for the applications API."""

from django import forms


class ApplicationListForm(forms.Form):
    page = forms.IntegerField(required=False, min_value=1, max_value=100)
    limit = forms.IntegerField(required=False, min_value=1, max_value=100)

    def clean_page(self):
        return self.cleaned_data.get('page') or 1

    def clean_limit(self):
        return self.cleaned_data.get('limit') or 30


class ApplicationForm(forms.Form):
    email = forms.EmailField()
    name = forms.CharField(min_length=3, max_length=30)
    password = forms.CharField(strip=False)
    discoveryText = forms.CharField()

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name.replace('_', '').isalnum():
            raise forms.ValidationError("Username can only contain letters, numbers, and underscores.")
        return name

    def clean_email(self):
        return self.cleaned_data['email'].strip().lower()


class ApplicationStatusForm(forms.Form):
    status = forms.ChoiceField(choices=[('approved', 'Approved'), ('declined', 'Declined')])
