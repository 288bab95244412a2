# Generated migration for conversations app

from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Conversation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('participant_key', models.CharField(editable=False, max_length=255, unique=True)),
                ('last_message', models.TextField(blank=True, default='')),
                ('last_message_at', models.DateTimeField(blank=True, null=True)),
                ('last_sender_id', models.CharField(blank=True, default='', max_length=128)),
                ('context_type', models.CharField(blank=True, choices=[('listing', 'Listing'), ('shop', 'Shop'), ('user', 'User')], max_length=20, null=True)),
                ('context_id', models.CharField(blank=True, max_length=128, null=True)),
                ('context_title', models.CharField(blank=True, max_length=255, null=True)),
                ('listing_details', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'conversations',
                'ordering': ['-last_message_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ConversationParticipant',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('user_id', models.CharField(max_length=128)),
                ('display_name', models.CharField(blank=True, default='', max_length=255)),
                ('unread_count', models.PositiveIntegerField(default=0)),
                ('conversation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='participant_rows', to='conversations.conversation')),
            ],
            options={
                'db_table': 'conversation_participants',
                'ordering': ['id'],
            },
        ),
        migrations.AddIndex(
            model_name='conversation',
            index=models.Index(fields=['-last_message_at', '-id'], name='conversati_activity_idx'),
        ),
        migrations.AddIndex(
            model_name='conversationparticipant',
            index=models.Index(fields=['user_id'], name='conv_part_user_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='conversationparticipant',
            unique_together={('conversation', 'user_id')},
        ),
    ]
