import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


FORMAT_CHOICES = [('Html', 'HTML'), ('Markdown', 'Markdown'), ('Text', 'Plain text')]

RECORD_TYPE_CHOICES = [
    ('Comment', 'Comment'),
    ('Discussion', 'Discussion'),
    ('Registration', 'Registration'),
    ('Activity', 'Activity'),
    ('ActivityComment', 'Activity comment'),
    ('Conversation', 'Conversation'),
    ('ConversationMessage', 'Conversation message'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('verified', models.BooleanField(default=False, help_text='Verified members skip spam checking')),
                ('deleted', models.BooleanField(default=False, help_text='Soft-deleted accounts are invisible to the API')),
                ('is_applicant', models.BooleanField(db_index=True, default=False, help_text='Registration waiting for moderator approval')),
                ('discovery_text', models.TextField(blank=True, help_text='Reason the applicant gave for joining')),
                ('insert_ip_address', models.GenericIPAddressField(blank=True, help_text='IP address used when registering', null=True)),
                ('last_ip_address', models.GenericIPAddressField(blank=True, help_text='IP address of the most recent request', null=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'permissions': [('approve_users', 'Can approve or decline applications'), ('moderate', 'Can manage the moderation queue')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Discussion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Discussion title', max_length=100)),
                ('body', models.TextField(help_text='Opening post body')),
                ('format', models.CharField(choices=FORMAT_CHOICES, default='Html', max_length=20)),
                ('insert_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('date_inserted', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('count_comments', models.PositiveIntegerField(default=0, help_text='Denormalized number of comments')),
                ('insert_user', models.ForeignKey(help_text='Author of the discussion', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='discussions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-date_inserted'],
            },
        ),
        migrations.CreateModel(
            name='Comment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('body', models.TextField(help_text='Comment body')),
                ('format', models.CharField(choices=FORMAT_CHOICES, default='Html', max_length=20)),
                ('insert_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('date_inserted', models.DateTimeField(default=django.utils.timezone.now)),
                ('discussion', models.ForeignKey(help_text='Discussion this comment belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='forum.discussion')),
                ('insert_user', models.ForeignKey(help_text='Comment author', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['date_inserted', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('subject', models.CharField(blank=True, help_text='Optional subject line', max_length=255)),
                ('date_inserted', models.DateTimeField(default=django.utils.timezone.now)),
                ('count_messages', models.PositiveIntegerField(default=0)),
                ('insert_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='started_conversations', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='ConversationMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date_last_viewed', models.DateTimeField(blank=True, help_text='Last time the member opened the conversation', null=True)),
                ('count_read_messages', models.PositiveIntegerField(default=0)),
                ('deleted', models.BooleanField(default=False, help_text='Member left or hid the conversation')),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='forum.conversation')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversation_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('conversation', 'user')},
            },
        ),
        migrations.CreateModel(
            name='ConversationMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('body', models.TextField()),
                ('format', models.CharField(choices=FORMAT_CHOICES, default='Html', max_length=20)),
                ('insert_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('date_inserted', models.DateTimeField(default=django.utils.timezone.now)),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='forum.conversation')),
                ('insert_user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='conversation_messages', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['date_inserted', 'pk'],
            },
        ),
        migrations.CreateModel(
            name='Activity',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('activity_type', models.CharField(max_length=50)),
                ('headline_format', models.CharField(blank=True, max_length=255)),
                ('record_type', models.CharField(blank=True, choices=RECORD_TYPE_CHOICES, max_length=30)),
                ('record_id', models.PositiveIntegerField(blank=True, null=True)),
                ('story', models.TextField(blank=True)),
                ('format', models.CharField(choices=FORMAT_CHOICES, default='Html', max_length=20)),
                ('route', models.CharField(blank=True, max_length=255)),
                ('action_text', models.CharField(blank=True, max_length=50)),
                ('channel', models.CharField(blank=True, max_length=50)),
                ('is_read', models.BooleanField(default=False)),
                ('date_inserted', models.DateTimeField(default=django.utils.timezone.now)),
                ('activity_user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='caused_activities', to=settings.AUTH_USER_MODEL)),
                ('notify_user', models.ForeignKey(help_text='User receiving this notification', on_delete=django.db.models.deletion.CASCADE, related_name='activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'activities',
                'ordering': ['-date_inserted', '-pk'],
            },
        ),
        migrations.CreateModel(
            name='Log',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('operation', models.CharField(db_index=True, max_length=20)),
                ('record_type', models.CharField(choices=RECORD_TYPE_CHOICES, max_length=30)),
                ('record_id', models.PositiveIntegerField(blank=True, null=True)),
                ('record_user_id', models.PositiveIntegerField(blank=True, null=True)),
                ('record_name', models.CharField(blank=True, max_length=150)),
                ('record_email', models.CharField(blank=True, max_length=254)),
                ('record_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('record_date', models.DateTimeField(blank=True, null=True)),
                ('parent_record_id', models.PositiveIntegerField(blank=True, null=True)),
                ('data', models.JSONField(default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder, help_text='Snapshot of the record as it was logged')),
                ('group_by', models.JSONField(blank=True, default=list)),
                ('count_group', models.PositiveIntegerField(default=1)),
                ('insert_ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('date_inserted', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('date_updated', models.DateTimeField(blank=True, null=True)),
                ('inserted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-date_inserted', '-pk'],
                'indexes': [models.Index(fields=['operation', 'record_type', 'record_id'], name='forum_log_op_type_id_idx')],
            },
        ),
    ]
