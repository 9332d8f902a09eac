from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='CalendarEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('start', models.DateTimeField()),
                ('end', models.DateTimeField()),
                ('all_day', models.BooleanField(default=False)),
                ('event_type', models.CharField(choices=[('showing', 'Showing'), ('move_in', 'Move-in'), ('inspection', 'Inspection'), ('maintenance', 'Maintenance'), ('meeting', 'Meeting'), ('other', 'Other')], default='showing', max_length=20)),
                ('status', models.CharField(choices=[('confirmed', 'Confirmed'), ('pending', 'Pending'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='confirmed', max_length=20)),
                ('color', models.CharField(blank=True, default='', max_length=20)),
                ('lead_name', models.CharField(blank=True, default='', max_length=200)),
                ('lead_email', models.EmailField(blank=True, default='', max_length=254)),
                ('lead_phone', models.CharField(blank=True, default='', max_length=50)),
                ('property_address', models.CharField(blank=True, default='', max_length=300)),
                ('community', models.CharField(blank=True, default='', max_length=200)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['start'],
                'indexes': [
                    models.Index(fields=['start', 'status'], name='planner_event_start_status_idx'),
                    models.Index(fields=['status'], name='planner_event_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RecurrenceRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('frequency', models.CharField(choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly'), ('yearly', 'Yearly')], default='weekly', max_length=20)),
                ('interval', models.PositiveIntegerField(default=1)),
                ('days_of_week', models.JSONField(blank=True, default=list, help_text='Weekday indices for weekly rules (0=Monday, 6=Sunday)')),
                ('end_date', models.DateField(blank=True, help_text='Last date an occurrence may start on', null=True)),
                ('occurrence_count', models.PositiveIntegerField(blank=True, help_text='Total number of occurrences, including the first', null=True)),
                ('event', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='recurrence', to='planner.calendarevent')),
            ],
        ),
        migrations.CreateModel(
            name='EventTimeChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('source', models.CharField(choices=[('move', 'Move'), ('resize', 'Resize'), ('edit', 'Edit')], max_length=10)),
                ('previous_start', models.DateTimeField()),
                ('previous_end', models.DateTimeField()),
                ('new_start', models.DateTimeField()),
                ('new_end', models.DateTimeField()),
                ('reason', models.CharField(blank=True, default='', max_length=300)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_changes', to='planner.calendarevent')),
            ],
            options={
                'ordering': ['-changed_at', '-id'],
            },
        ),
    ]
