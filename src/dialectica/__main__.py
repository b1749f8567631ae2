from dialectica.cli import main

raise SystemExit(main())
