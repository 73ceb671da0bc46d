from django.dispatch import Signal

# Sent by SpamModel.is_spam once the record has been enriched.
# Receivers get record_type, data and options; any truthy return value
# marks the record as spam.
check_spam = Signal()
